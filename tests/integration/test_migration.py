"""Tests for copying a registry between backends."""

import pytest

from smpregistry.backends.migration import migrate_bundle
from smpregistry.configuration.context import RegistryContext
from smpregistry.domain import ParticipantIdentifier


@pytest.fixture
def source(make_config):
    ctx = RegistryContext(make_config('xml'))
    ctx.init_from_configuration()
    yield ctx
    ctx.close()


@pytest.fixture
def target(make_config):
    ctx = RegistryContext(make_config('sql'))
    ctx.init_from_configuration()
    yield ctx
    ctx.close()


@pytest.fixture
def populated(source, participant, document_type, make_service_information, sample_entities):
    source.user_manager.create_user('alice', 'alice-secret')
    sg = source.service_group_manager.create_service_group('alice', participant, '<ext xmlns="urn:test"/>')
    source.service_information_manager.merge_service_information(make_service_information(sg))
    other = source.service_group_manager.create_service_group(
        'alice', ParticipantIdentifier(participant.scheme, '0088:5798000000002'))
    source.redirect_manager.create_or_update_redirect(other, document_type, 'https://other.example.org', 'CN=Other')
    source.business_card_manager.create_or_update_business_card(sg, sample_entities)
    source.settings_manager.update_settings(directory_hostname='https://directory.test')
    source.locator_info_manager.create_locator_info('SML', 'edelivery.test', 'https://sml.test')
    return source


class TestMigrateBundle:

    def test_copies_everything(self, populated, target, participant, document_type):
        counts = migrate_bundle(populated.managers, target.managers, show_progress=False)

        assert counts['service_groups'] == 2
        assert counts['service_information'] == 1
        assert counts['redirects'] == 1
        assert counts['business_cards'] == 1
        assert counts['users'] == 1

        sg = target.service_group_manager.get_service_group_of_id(participant)
        assert sg.owner_id == 'alice'
        assert sg.has_extension
        si = target.service_information_manager.get_service_information_of_service_group_and_document_type(
            sg, document_type)
        assert si.processes[0].endpoints[0].endpoint_reference == 'https://ap.example.org/as4'
        assert target.business_card_manager.get_business_card_of_service_group(sg).entities[0].country_code == 'DK'
        assert target.redirect_manager.get_redirect_count() == 1

    def test_password_hashes_survive(self, populated, target):
        migrate_bundle(populated.managers, target.managers, show_progress=False)

        assert target.user_manager.validate_user_credentials('alice', 'alice-secret').user_id == 'alice'

    def test_settings_and_locator_infos(self, populated, target):
        migrate_bundle(populated.managers, target.managers, show_progress=False)

        assert target.settings_manager.get_settings().directory_hostname == 'https://directory.test'
        [info] = target.locator_info_manager.get_all_locator_infos()
        assert info.dns_zone == 'edelivery.test'

    def test_rerun_updates_in_place(self, populated, target):
        migrate_bundle(populated.managers, target.managers, show_progress=False)
        migrate_bundle(populated.managers, target.managers, show_progress=False)

        assert target.service_group_manager.get_service_group_count() == 2
        assert target.service_information_manager.get_service_information_count() == 1
