"""Tests for the owner-checked registry API."""

import pytest

from smpregistry.api import RegistryAPI
from smpregistry.coordinator import OperationState, Outcome
from smpregistry.domain import Change, Redirect, ServiceInformation
from smpregistry.errors import BackendError, NotFound, Unauthorized


@pytest.fixture
def api(context):
    return RegistryAPI(context)


@pytest.fixture
def alice(context):
    return context.user_manager.create_user('alice', 'alice-secret')


@pytest.fixture
def bob(context):
    return context.user_manager.create_user('bob', 'bob-secret')


@pytest.fixture
def owned_group(api, alice, participant):
    with api.save_service_group(participant, None, alice) as op:
        op.raise_for_error()
    return op.service_group


class TestServiceGroups:

    def test_authenticate(self, api, alice):
        assert api.authenticate('alice', 'alice-secret').user_id == 'alice'
        with pytest.raises(Unauthorized):
            api.authenticate('alice', 'wrong')

    def test_create_then_update(self, api, alice, participant, owned_group):
        op = api.save_service_group(participant, '<ext xmlns="urn:test"/>', alice)
        result = op.resolve(Outcome.SUCCESS)

        assert result.state == OperationState.COMMITTED
        assert result.change == Change.CHANGED
        assert api.get_service_group(participant).has_extension
        assert [sg.id for sg in api.get_service_group_list(alice)] == [owned_group.id]

    def test_update_by_other_user_refused(self, api, bob, participant, owned_group):
        with pytest.raises(Unauthorized):
            api.save_service_group(participant, None, bob)

    def test_delete(self, api, alice, participant, owned_group):
        with api.delete_service_group(participant, alice) as op:
            op.raise_for_error()

        with pytest.raises(NotFound):
            api.get_service_group(participant)

    def test_writes_disabled(self, api, context, alice, participant):
        context.settings_manager.update_settings(rest_writable_api_disabled=True)

        with pytest.raises(Unauthorized, match="disabled"):
            api.save_service_group(participant, None, alice)
        assert not context.service_group_manager.contains_service_group_with_id(participant)


class TestRegistrations:

    def test_redirect_replaces_service_information(self, api, alice, participant, document_type,
                                                   owned_group, make_service_information):
        api.save_service_information(make_service_information(owned_group), alice)

        api.save_redirect(participant, document_type, 'https://other-smp.example.org', 'CN=Other', alice)

        assert isinstance(api.get_service_registration(participant, document_type), Redirect)
        assert api.get_complete_service_group(participant).service_information == []

    def test_service_information_replaces_redirect(self, api, alice, participant, document_type,
                                                   owned_group, make_service_information):
        api.save_redirect(participant, document_type, 'https://other-smp.example.org', 'CN=Other', alice)

        change = api.save_service_information(make_service_information(owned_group), alice)

        assert change == Change.CHANGED
        assert isinstance(api.get_service_registration(participant, document_type), ServiceInformation)
        complete = api.get_complete_service_group(participant)
        assert complete.redirects == []
        assert complete.document_types == [document_type]

    def test_failed_service_information_keeps_redirect(self, api, context, alice, participant, document_type,
                                                       owned_group, make_service_information, mocker):
        api.save_redirect(participant, document_type, 'https://other-smp.example.org', 'CN=Other', alice)
        mocker.patch.object(context.service_information_manager, 'merge_service_information',
                            side_effect=BackendError("disk full"))

        with pytest.raises(BackendError):
            api.save_service_information(make_service_information(owned_group), alice)

        redirect = api.get_service_registration(participant, document_type)
        assert isinstance(redirect, Redirect)
        assert redirect.target_href == 'https://other-smp.example.org'

    def test_failed_redirect_keeps_service_information(self, api, context, alice, participant, document_type,
                                                       owned_group, make_service_information, mocker):
        api.save_service_information(make_service_information(owned_group), alice)
        mocker.patch.object(context.redirect_manager, 'create_or_update_redirect',
                            side_effect=BackendError("disk full"))

        with pytest.raises(BackendError):
            api.save_redirect(participant, document_type, 'https://other-smp.example.org', 'CN=Other', alice)

        assert isinstance(api.get_service_registration(participant, document_type), ServiceInformation)

    def test_other_owner_cannot_register(self, api, bob, owned_group, make_service_information):
        with pytest.raises(Unauthorized):
            api.save_service_information(make_service_information(owned_group), bob)

    def test_delete_registration(self, api, alice, participant, document_type,
                                 owned_group, make_service_information):
        api.save_service_information(make_service_information(owned_group), alice)

        assert api.delete_service_registration(participant, document_type, alice) == Change.CHANGED
        with pytest.raises(NotFound):
            api.get_service_registration(participant, document_type)
        with pytest.raises(NotFound):
            api.delete_service_registration(participant, document_type, alice)


class TestBusinessCards:

    def test_save_and_delete(self, api, alice, participant, owned_group, sample_entities):
        card = api.save_business_card(participant, sample_entities, alice)

        assert card.entities[0].country_code == 'DK'
        assert api.get_complete_service_group(participant).business_card == card
        assert api.delete_business_card(participant, alice) == Change.CHANGED

    def test_delete_missing_card(self, api, alice, participant, owned_group):
        with pytest.raises(NotFound):
            api.delete_business_card(participant, alice)
