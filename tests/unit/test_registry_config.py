"""Tests for YAML configuration loading and validation."""

import pytest
import yaml

from smpregistry.configuration.config import (
    LocatorParams,
    LoggingParams,
    RegistryConfig,
    load_config,
)
from smpregistry.domain import IdentifierPolicy
from smpregistry.errors import ConfigurationError


@pytest.fixture
def config_file(tmp_path):
    def _write(data):
        path = tmp_path / 'registry.yaml'
        path.write_text(yaml.safe_dump(data))
        return path
    return _write


class TestLoadConfig:

    def test_minimal(self, config_file):
        config = load_config(config_file({'backend': 'xml', 'backend_params': {'root_dir': './data'}}))

        assert config.backend == 'xml'
        assert isinstance(config.locator, LocatorParams)
        assert config.identifier_policy is IdentifierPolicy.PEPPOL

    def test_sections_from_mappings(self, config_file):
        config = load_config(config_file({
            'backend': 'sql',
            'locator': {'active': True, 'url': 'https://sml.test', 'smp_id': 'SMP-1', 'timeout': 10},
            'logging': {'level': 'debug'},
        }))

        assert config.locator.timeout == 10
        assert config.logging.level == 'DEBUG'

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / 'missing.yaml')

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / 'broken.yaml'
        path.write_text("backend: [unterminated")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(path)

    def test_top_level_must_be_mapping(self, tmp_path):
        path = tmp_path / 'list.yaml'
        path.write_text("- xml\n")

        with pytest.raises(ConfigurationError):
            load_config(path)

    def test_overrides(self, config_file):
        path = config_file({'backend': 'xml', 'locator': {'timeout': 10}})

        config = load_config(path, backend='sql', locator={'compensation_timeout': 5})

        assert config.backend == 'sql'
        assert config.locator.timeout == 10
        assert config.locator.compensation_timeout == 5


class TestValidation:

    def test_backend_required(self):
        with pytest.raises(ConfigurationError, match="'backend' is required"):
            RegistryConfig()

    def test_unknown_keys_listed(self):
        with pytest.raises(ConfigurationError, match="Unknown RegistryConfig keys: \\['colour'\\]"):
            RegistryConfig.from_dict({'backend': 'xml', 'colour': 'blue'})

    def test_unknown_identifier_type(self):
        with pytest.raises(ConfigurationError):
            RegistryConfig(backend='xml', identifier_type='bdxr')

    @pytest.mark.parametrize('section', [
        {'active': True, 'smp_id': 'SMP-1'},
        {'active': True, 'url': 'https://sml.test'},
        {'timeout': 0},
        {'compensation_timeout': True},
        {'client_key': 'key.pem'},
    ])
    def test_invalid_locator(self, section):
        with pytest.raises(ConfigurationError):
            LocatorParams.from_dict(section)

    def test_directory_needs_hostname_when_enabled(self):
        with pytest.raises(ConfigurationError):
            RegistryConfig(backend='xml', directory={'enabled': True})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigurationError):
            LoggingParams(level='verbose')


class TestDefaultSettings:

    def test_settings_follow_config(self):
        config = RegistryConfig(
            backend='xml',
            rest_writable_api_disabled=True,
            locator={'active': True, 'url': 'https://sml.test', 'smp_id': 'SMP-1'},
            directory={'enabled': True, 'hostname': 'https://directory.test'},
        )

        settings = config.default_settings()

        assert settings.rest_writable_api_disabled
        assert settings.write_to_locator
        assert settings.locator_url == 'https://sml.test'
        assert settings.directory_hostname == 'https://directory.test'

    def test_to_dict_round_trips(self):
        config = RegistryConfig(backend='document', backend_params={'root_dir': '/tmp/x'})

        assert RegistryConfig.from_dict(config.to_dict()).to_dict() == config.to_dict()
