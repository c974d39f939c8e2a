"""Tests for the backend registry and discovery."""

import threading
import time

import pytest

from smpregistry.backends import BACKEND_MODULES, BackendRegistry, create_registry, discover_backends
from smpregistry.backends.discovery import validate_backend_metadata
from smpregistry.backends.storage import SQLBackend, XMLBackend
from smpregistry.errors import ConfigurationError, DuplicateBackend


def _factory(params, context=None):
    return None


class TestRegistration:

    def test_register_and_resolve(self):
        registry = BackendRegistry()
        registry.register('memory', _factory)

        assert registry.resolve('memory') is _factory
        assert registry.has_backend('memory')
        assert registry.list_ids() == ['memory']

    def test_duplicate_id_rejected(self):
        registry = BackendRegistry()
        registry.register('memory', _factory)

        with pytest.raises(DuplicateBackend):
            registry.register('memory', lambda params, context=None: None)
        assert registry.resolve('memory') is _factory

    def test_non_callable_rejected(self):
        with pytest.raises(TypeError):
            BackendRegistry().register('memory', 'not a factory')

    @pytest.mark.parametrize('backend_id', [None, '', 'unknown'])
    def test_resolve_absent(self, backend_id):
        registry = BackendRegistry()
        registry.register('memory', _factory)

        assert registry.resolve(backend_id) is None


class TestDiscovery:

    def test_builtin_backends_in_order(self):
        registry = create_registry()

        assert registry.list_ids() == ['xml', 'sql', 'document']
        assert registry.resolve('sql') is SQLBackend
        assert set(registry.describe()) == {'xml', 'sql', 'document'}

    def test_discovery_twice_into_same_registry_fails(self):
        registry = BackendRegistry()
        discover_backends(registry, BACKEND_MODULES)

        with pytest.raises(DuplicateBackend):
            discover_backends(registry, BACKEND_MODULES)

    def test_module_without_backend(self):
        with pytest.raises(ConfigurationError):
            discover_backends(BackendRegistry(), ['smpregistry.backends.codec'])

    def test_metadata_validation(self):
        assert validate_backend_metadata(XMLBackend) == (True, None)

        class NamelessBackend(XMLBackend):
            __backend_id__ = None

        is_valid, error = validate_backend_metadata(NamelessBackend)
        assert not is_valid
        assert '__backend_id__' in error


class TestReinitialize:

    def test_readers_see_old_or_new_table(self):
        """Concurrent readers never observe a half-built table."""
        def slow_discovery(target):
            target.register('a', _factory)
            time.sleep(0.05)
            target.register('b', _factory)

        registry = BackendRegistry(discovery=slow_discovery)
        registry.register('old', _factory)

        observed = []
        stop = threading.Event()

        def reader():
            while not stop.is_set():
                observed.append(tuple(registry.list_ids()))

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        registry.reinitialize()
        time.sleep(0.01)
        stop.set()
        for thread in readers:
            thread.join()

        assert set(observed) <= {('old',), ('a', 'b')}
        assert registry.list_ids() == ['a', 'b']

    def test_failed_discovery_keeps_previous_table(self):
        def broken_discovery(target):
            target.register('a', _factory)
            raise ConfigurationError("broken module")

        registry = BackendRegistry(discovery=broken_discovery)
        registry.register('old', _factory)

        with pytest.raises(ConfigurationError):
            registry.reinitialize()
        assert registry.list_ids() == ['old']

    def test_reinitialize_without_discovery_clears(self):
        registry = BackendRegistry()
        registry.register('old', _factory)

        registry.reinitialize()

        assert registry.list_ids() == []
