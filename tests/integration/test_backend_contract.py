"""Manager contract tests, run against every built-in backend."""

from datetime import date, datetime

import pytest

from smpregistry.domain import (
    Change,
    DocumentTypeIdentifier,
    Endpoint,
    ParticipantIdentifier,
    Process,
    ProcessIdentifier,
    ServiceInformation,
)
from smpregistry.domain.extension import fragments_equal
from smpregistry.errors import AlreadyExists, BackendError, NotFound, Unauthorized, ValidationError

EXTENSION = '<ext:Info xmlns:ext="urn:example:ext"><ext:Code>42</ext:Code></ext:Info>'


class TestServiceGroups:

    def test_create_and_get(self, context, participant):
        manager = context.service_group_manager
        sg = manager.create_service_group('alice', participant, EXTENSION)

        loaded = manager.get_service_group_of_id(participant)
        assert loaded == sg
        assert loaded.owner_id == 'alice'
        assert fragments_equal(loaded.extensions, [EXTENSION])
        assert manager.get_service_group_count() == 1

    def test_duplicate_create_rejected(self, context, participant):
        manager = context.service_group_manager
        manager.create_service_group('alice', participant)

        with pytest.raises(AlreadyExists):
            manager.create_service_group('bob', participant)
        assert manager.get_service_group_of_id(participant).owner_id == 'alice'

    def test_peppol_scheme_is_case_insensitive(self, context):
        manager = context.service_group_manager
        manager.create_service_group('alice', ParticipantIdentifier('iso6523-actorid-upis', '9915:ABC'))

        assert manager.contains_service_group_with_id(ParticipantIdentifier('iso6523-actorid-upis', '9915:abc'))
        with pytest.raises(AlreadyExists):
            manager.create_service_group('alice', ParticipantIdentifier('iso6523-actorid-upis', '9915:abc'))

    def test_invalid_extension_leaves_nothing_behind(self, context, participant):
        manager = context.service_group_manager

        with pytest.raises(ValidationError):
            manager.create_service_group('alice', participant, '<broken>')
        assert manager.get_service_group_count() == 0

    def test_update_reports_change(self, context, participant):
        manager = context.service_group_manager
        manager.create_service_group('alice', participant)

        assert manager.update_service_group(participant, 'alice', None) == Change.UNCHANGED
        assert manager.update_service_group(participant, 'bob', EXTENSION) == Change.CHANGED
        # Same fragment, different formatting
        assert manager.update_service_group(
            participant, 'bob', '<ext:Info xmlns:ext="urn:example:ext">  <ext:Code>42</ext:Code> </ext:Info>'
        ) == Change.UNCHANGED
        assert manager.get_service_group_of_id(participant).owner_id == 'bob'

    def test_update_missing_group(self, context, participant):
        with pytest.raises(NotFound):
            context.service_group_manager.update_service_group(participant, 'alice')

    def test_owner_listing(self, context):
        manager = context.service_group_manager
        manager.create_service_group('alice', ParticipantIdentifier('iso6523-actorid-upis', '0088:1'))
        manager.create_service_group('alice', ParticipantIdentifier('iso6523-actorid-upis', '0088:2'))
        manager.create_service_group('bob', ParticipantIdentifier('iso6523-actorid-upis', '0088:3'))

        assert manager.get_service_group_count_of_owner('alice') == 2
        assert [sg.owner_id for sg in manager.get_all_service_groups_of_owner('bob')] == ['bob']


class TestCascadingDelete:

    def test_delete_removes_everything_owned(self, context, participant, make_service_information,
                                             sample_entities):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.service_information_manager.merge_service_information(make_service_information(sg))
        context.redirect_manager.create_or_update_redirect(
            sg, DocumentTypeIdentifier('busdox-docid-qns', 'urn:other'), 'https://smp2.example.org', 'CN=SMP2')
        context.business_card_manager.create_or_update_business_card(sg, sample_entities)

        assert context.service_group_manager.delete_service_group(participant) == Change.CHANGED

        assert context.service_group_manager.get_service_group_of_id(participant) is None
        assert context.service_information_manager.get_service_information_count() == 0
        assert context.redirect_manager.get_redirect_count() == 0
        assert context.business_card_manager.get_business_card_count() == 0

    def test_delete_is_idempotent(self, context, participant):
        context.service_group_manager.create_service_group('alice', participant)

        assert context.service_group_manager.delete_service_group(participant) == Change.CHANGED
        assert context.service_group_manager.delete_service_group(participant) == Change.UNCHANGED

    def test_other_groups_untouched(self, context, participant, make_service_information):
        other = ParticipantIdentifier('iso6523-actorid-upis', '0088:other')
        context.service_group_manager.create_service_group('alice', participant)
        other_sg = context.service_group_manager.create_service_group('alice', other)
        context.service_information_manager.merge_service_information(make_service_information(other_sg))

        context.service_group_manager.delete_service_group(participant)

        assert context.service_information_manager.get_all_service_information_of_service_group(other_sg)


class TestServiceInformation:

    def test_merge_and_read_back(self, context, participant, document_type, make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        si = make_service_information(sg)

        assert context.service_information_manager.merge_service_information(si) == Change.CHANGED
        assert context.service_information_manager.merge_service_information(si) == Change.UNCHANGED

        loaded = context.service_information_manager.get_service_information_of_service_group_and_document_type(
            sg, document_type)
        assert loaded == si
        assert loaded.total_endpoint_count == 1
        assert loaded.processes[0].endpoints[0].certificate == 'MIIC...'

    def test_merge_replaces_processes(self, context, participant, document_type, make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        manager = context.service_information_manager
        manager.merge_service_information(make_service_information(sg))

        change = manager.merge_service_information(make_service_information(sg, 'https://new.example.org/as4'))

        assert change == Change.CHANGED
        assert manager.get_service_information_count() == 1
        endpoint = manager.get_service_information_of_service_group_and_document_type(
            sg, document_type).processes[0].endpoints[0]
        assert endpoint.endpoint_reference == 'https://new.example.org/as4'

    def test_endpoint_dates_and_extensions_survive(self, context, participant, document_type):
        sg = context.service_group_manager.create_service_group('alice', participant)
        endpoint = Endpoint(
            transport_profile='peppol-transport-as4-v2_0',
            endpoint_reference='https://ap.example.org/as4',
            require_business_level_signature=True,
            service_activation=datetime(2024, 1, 1, 12, 0),
            service_expiration=datetime(2030, 1, 1),
            extensions=[EXTENSION],
        )
        process = Process(ProcessIdentifier('cenbii-procid-ubl', 'urn:process'), [endpoint])
        context.service_information_manager.merge_service_information(
            ServiceInformation(sg, document_type, [process]))

        found = context.service_information_manager.find_service_information(
            sg, document_type, ProcessIdentifier('cenbii-procid-ubl', 'urn:process'), 'peppol-transport-as4-v2_0')

        assert found.service_activation == datetime(2024, 1, 1, 12, 0)
        assert found.service_expiration == datetime(2030, 1, 1)
        assert found.require_business_level_signature is True
        assert fragments_equal(found.extensions, [EXTENSION])

    def test_missing_service_group(self, context, participant, make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.service_group_manager.delete_service_group(participant)

        with pytest.raises(NotFound):
            context.service_information_manager.merge_service_information(make_service_information(sg))

    def test_document_types_of_group(self, context, participant, document_type, make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.service_information_manager.merge_service_information(make_service_information(sg))

        assert context.service_information_manager.get_all_document_types_of_service_group(sg) == [document_type]


class TestMutualExclusion:
    """A document type has either service information or a redirect, never both."""

    def test_redirect_blocks_service_information(self, context, participant, document_type,
                                                 make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.redirect_manager.create_or_update_redirect(sg, document_type, 'https://smp2.example.org', 'CN=SMP2')

        with pytest.raises(AlreadyExists):
            context.service_information_manager.merge_service_information(make_service_information(sg))
        assert context.service_information_manager.get_service_information_count() == 0

    def test_service_information_blocks_redirect(self, context, participant, document_type,
                                                 make_service_information):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.service_information_manager.merge_service_information(make_service_information(sg))

        with pytest.raises(AlreadyExists):
            context.redirect_manager.create_or_update_redirect(sg, document_type, 'https://smp2.example.org', 'CN=X')
        assert context.redirect_manager.get_redirect_count() == 0


class TestRedirects:

    def test_create_update_delete(self, context, participant, document_type):
        sg = context.service_group_manager.create_service_group('alice', participant)
        manager = context.redirect_manager

        manager.create_or_update_redirect(sg, document_type, 'https://smp2.example.org', 'CN=SMP2')
        manager.create_or_update_redirect(sg, document_type, 'https://smp3.example.org', 'CN=SMP3',
                                          certificate='MIID...')

        redirect = manager.get_redirect_of_service_group_and_document_type(sg, document_type)
        assert manager.get_redirect_count() == 1
        assert redirect.target_href == 'https://smp3.example.org'
        assert redirect.certificate == 'MIID...'

        assert manager.delete_redirect(redirect) == Change.CHANGED
        assert manager.delete_redirect(redirect) == Change.UNCHANGED


class TestBusinessCards:

    def test_round_trip(self, context, participant, sample_entities):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.business_card_manager.create_or_update_business_card(sg, sample_entities)

        card = context.business_card_manager.get_business_card_of_service_group(sg)
        entity = card.entities[0]
        assert entity.first_name == 'Example Corp'
        assert entity.country_code == 'DK'
        assert entity.registration_date == date(2020, 1, 2)

    def test_requires_service_group(self, context, participant, sample_entities):
        sg = context.service_group_manager.create_service_group('alice', participant)
        context.service_group_manager.delete_service_group(participant)

        with pytest.raises(NotFound):
            context.business_card_manager.create_or_update_business_card(sg, sample_entities)


class TestUsers:

    def test_credentials_and_ownership(self, context, participant):
        users = context.user_manager
        alice = users.create_user('alice', 's3cret')
        bob = users.create_user('bob', 'hunter2')
        context.service_group_manager.create_service_group('alice', participant)

        assert users.validate_user_credentials('alice', 's3cret') == alice
        with pytest.raises(Unauthorized):
            users.validate_user_credentials('alice', 'wrong')
        with pytest.raises(Unauthorized):
            users.validate_user_credentials('nobody', 's3cret')

        assert users.verify_ownership(participant, alice).owner_id == 'alice'
        with pytest.raises(Unauthorized):
            users.verify_ownership(participant, bob)
        with pytest.raises(NotFound):
            users.verify_ownership(ParticipantIdentifier('iso6523-actorid-upis', '0088:none'), alice)

    def test_duplicate_and_delete(self, context):
        users = context.user_manager
        users.create_user('alice', 's3cret')

        with pytest.raises(AlreadyExists):
            users.create_user('alice', 'other')
        assert users.delete_user('alice') == Change.CHANGED
        assert users.get_user_count() == 0


class TestAuxiliaryManagers:

    def test_settings_default_from_configuration(self, context):
        settings = context.settings_manager.get_settings()
        assert settings.write_to_locator is False

        assert context.settings_manager.update_settings(rest_writable_api_disabled=True) == Change.CHANGED
        assert context.settings_manager.update_settings(rest_writable_api_disabled=True) == Change.UNCHANGED
        assert context.settings_manager.get_settings().rest_writable_api_disabled is True

    def test_unknown_setting_rejected(self, context):
        with pytest.raises(ValidationError):
            context.settings_manager.update_settings(no_such_setting=True)

    def test_transport_profiles_seeded(self, context):
        manager = context.transport_profile_manager
        ids = {p.profile_id for p in manager.get_all_transport_profiles()}

        assert 'peppol-transport-as4-v2_0' in ids
        assert manager.get_transport_profile_of_id('busdox-transport-as2-ver2p0').deprecated is True

        manager.create_transport_profile('custom-profile', 'Custom')
        with pytest.raises(AlreadyExists):
            manager.create_transport_profile('custom-profile', 'Again')
        assert manager.remove_transport_profile('custom-profile') == Change.CHANGED

    def test_locator_infos(self, context):
        manager = context.locator_info_manager
        info = manager.create_locator_info('Test SML', 'acc.edelivery.example', 'https://sml.example.org/')

        assert manager.get_locator_info_of_id(info.locator_id).management_service_url == 'https://sml.example.org'
        assert manager.update_locator_info(info.locator_id, 'Renamed', 'acc.edelivery.example',
                                           'https://sml.example.org', False) == Change.CHANGED
        assert manager.get_locator_info_of_id(info.locator_id).client_certificate_required is False
        with pytest.raises(NotFound):
            manager.update_locator_info('missing', 'X', 'zone', 'https://x')
        assert manager.remove_locator_info(info.locator_id) == Change.CHANGED


class TestControlCharacters:
    """Text the XML format cannot carry literally must not spoil the collection it is stored in."""

    def test_owner_with_control_character(self, context, participant):
        manager = context.service_group_manager
        manager.create_service_group('alice', ParticipantIdentifier('iso6523-actorid-upis', '0088:2'))
        manager.create_service_group('bob\x0b', participant)

        owners = sorted(sg.owner_id for sg in manager.get_all_service_groups())
        assert owners == ['alice', 'bob\x0b']
        assert manager.get_service_group_of_id(participant).owner_id == 'bob\x0b'
        assert manager.delete_service_group(participant) == Change.CHANGED
        assert manager.get_service_group_count() == 1

    def test_endpoint_text_and_user_id(self, context, participant, document_type):
        sg = context.service_group_manager.create_service_group('alice', participant)
        endpoint = Endpoint(
            transport_profile='peppol-transport-as4-v2_0',
            endpoint_reference='https://ap.example.org/as4',
            service_description='line one\r\nline\x01two',
        )
        process = Process(ProcessIdentifier('cenbii-procid-ubl', 'urn:process'), [endpoint])
        context.service_information_manager.merge_service_information(
            ServiceInformation(sg, document_type, [process]))
        context.user_manager.create_user('carol\x1f', 's3cret')

        found = context.service_information_manager.find_service_information(
            sg, document_type, ProcessIdentifier('cenbii-procid-ubl', 'urn:process'), 'peppol-transport-as4-v2_0')
        assert found.service_description == 'line one\r\nline\x01two'
        assert context.user_manager.validate_user_credentials('carol\x1f', 's3cret').user_id == 'carol\x1f'


class TestXMLPartialCascade:
    """The XML backend cannot cascade atomically; a partial delete is reported as such."""

    def test_partial_cascade_reported(self, make_config, participant, make_service_information, mocker):
        from smpregistry.configuration.context import RegistryContext

        with RegistryContext(make_config('xml')) as ctx:
            ctx.init_from_configuration()
            sg = ctx.service_group_manager.create_service_group('alice', participant)
            ctx.service_information_manager.merge_service_information(make_service_information(sg))

            store = ctx.managers.provider.store
            mocker.patch.object(store, 'delete_children',
                                side_effect=[Change.CHANGED, BackendError("write failed")])

            with pytest.raises(BackendError) as excinfo:
                ctx.service_group_manager.delete_service_group(participant)

            assert excinfo.value.extra['partial_cascade'] is True
            assert excinfo.value.extra['completed'] == ['service_information']
            assert ctx.service_group_manager.contains_service_group_with_id(participant)
