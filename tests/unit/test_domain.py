"""Tests for domain entities, identifiers and extension handling."""

from datetime import datetime

import pytest

from smpregistry.domain import (
    BusinessCardContact,
    BusinessCardEntity,
    BusinessCardName,
    Change,
    DocumentTypeIdentifier,
    Endpoint,
    IdentifierPolicy,
    LocatorInfo,
    ParticipantIdentifier,
    Process,
    ProcessIdentifier,
    Redirect,
    RegistrySettings,
    ServiceGroup,
    ServiceInformation,
    User,
    hash_password,
    verify_password,
)
from smpregistry.domain.extension import (
    decode_extensions,
    encode_extensions,
    encode_legacy,
    fragments_equal,
)
from smpregistry.errors import ValidationError

FRAGMENT = '<a:Ext xmlns:a="urn:a">one</a:Ext>'
SECOND = '<b:Ext xmlns:b="urn:b"><b:Item>two</b:Item></b:Ext>'


class TestIdentifiers:

    def test_parse(self):
        pid = ParticipantIdentifier.parse('iso6523-actorid-upis::0088:5798000000001')

        assert pid.scheme == 'iso6523-actorid-upis'
        assert pid.value == '0088:5798000000001'
        assert str(pid) == 'iso6523-actorid-upis::0088:5798000000001'

    def test_value_may_contain_separator(self):
        doc = DocumentTypeIdentifier.parse('busdox-docid-qns::urn:x::Invoice##UBL-2.1')
        assert doc.value == 'urn:x::Invoice##UBL-2.1'

    @pytest.mark.parametrize('uri', ['', 'no-separator', '::value', 'scheme::', None])
    def test_parse_rejects(self, uri):
        with pytest.raises(ValidationError):
            ParticipantIdentifier.parse(uri)
        assert ParticipantIdentifier.parse_or_none(uri) is None

    def test_length_limits(self):
        with pytest.raises(ValidationError):
            ParticipantIdentifier('x' * 26, 'value')
        with pytest.raises(ValidationError):
            ParticipantIdentifier('scheme', 'v' * 51)
        DocumentTypeIdentifier('scheme', 'v' * 100)

    def test_types_do_not_compare_equal(self):
        assert ParticipantIdentifier('s', 'v') != DocumentTypeIdentifier('s', 'v')

    def test_policy_service_group_id(self):
        pid = ParticipantIdentifier('iso6523-actorid-upis', '9915:ABC')

        assert IdentifierPolicy.PEPPOL.service_group_id(pid) == 'iso6523-actorid-upis::9915:abc'
        assert IdentifierPolicy.SIMPLE.service_group_id(pid) == 'iso6523-actorid-upis::9915:ABC'
        assert IdentifierPolicy.PEPPOL.service_group_id(ParticipantIdentifier('other', 'ABC')) == 'other::ABC'

    def test_policy_from_name(self):
        assert IdentifierPolicy.from_name('PEPPOL') is IdentifierPolicy.PEPPOL
        with pytest.raises(ValidationError):
            IdentifierPolicy.from_name('bdxr')


class TestExtensions:

    def test_legacy_and_json_forms_decode_alike(self):
        assert decode_extensions(FRAGMENT) == [FRAGMENT]
        assert decode_extensions(encode_extensions([FRAGMENT])) == [FRAGMENT]

    def test_multiple_fragments_keep_order(self):
        fragments = decode_extensions(encode_extensions([FRAGMENT, SECOND]))

        assert fragments_equal(fragments, [FRAGMENT, SECOND])
        assert not fragments_equal(fragments, [SECOND, FRAGMENT])

    def test_empty(self):
        assert decode_extensions(None) == []
        assert decode_extensions('  ') == []
        assert encode_extensions([]) is None

    @pytest.mark.parametrize('text', ['<open>', '{"any": 1}', '[{"any": "not xml"}]', 'plain text'])
    def test_malformed(self, text):
        with pytest.raises(ValidationError):
            decode_extensions(text)

    def test_legacy_encoding_holds_one_fragment(self):
        assert encode_legacy([FRAGMENT]) == FRAGMENT
        with pytest.raises(ValidationError):
            encode_legacy([FRAGMENT, SECOND])

    def test_semantic_equality(self):
        assert fragments_equal(['<a x="1" y="2"/>'], ['<a y="2" x="1"></a>'])

    def test_set_extensions_reports_change(self):
        sg = ServiceGroup('alice', ParticipantIdentifier('s', 'v'))

        assert sg.set_extensions(FRAGMENT) == Change.CHANGED
        assert sg.set_extensions([FRAGMENT]) == Change.UNCHANGED
        assert sg.first_extension_xml == FRAGMENT
        assert sg.set_extensions(None) == Change.CHANGED
        assert not sg.has_extension


class TestServiceGroup:

    def test_requires_owner(self):
        with pytest.raises(ValidationError):
            ServiceGroup('', ParticipantIdentifier('s', 'v'))

    def test_equality_by_id(self):
        first = ServiceGroup('alice', ParticipantIdentifier('iso6523-actorid-upis', '0088:ABC'))
        second = ServiceGroup('bob', ParticipantIdentifier('iso6523-actorid-upis', '0088:abc'))

        assert first == second
        assert len({first, second}) == 1


class TestServiceInformation:

    @pytest.fixture
    def sg(self):
        return ServiceGroup('alice', ParticipantIdentifier('iso6523-actorid-upis', '0088:1'))

    def _endpoint(self, profile='peppol-transport-as4-v2_0'):
        return Endpoint(profile, 'https://ap.example.org')

    def test_requires_process_and_endpoint(self, sg):
        doc = DocumentTypeIdentifier('busdox-docid-qns', 'urn:doc')
        with pytest.raises(ValidationError):
            ServiceInformation(sg, doc, [])
        with pytest.raises(ValidationError):
            Process(ProcessIdentifier('p', 'v'), [])

    def test_duplicate_transport_profile(self):
        with pytest.raises(ValidationError):
            Process(ProcessIdentifier('p', 'v'), [self._endpoint(), self._endpoint()])

    def test_duplicate_process(self, sg):
        process = Process(ProcessIdentifier('p', 'v'), [self._endpoint()])
        with pytest.raises(ValidationError):
            ServiceInformation(sg, DocumentTypeIdentifier('d', 'v'), [process, process])

    def test_activation_window(self):
        with pytest.raises(ValidationError):
            Endpoint('profile', 'https://ap', service_activation=datetime(2030, 1, 1),
                     service_expiration=datetime(2020, 1, 1))

        endpoint = Endpoint('profile', 'https://ap', service_activation=datetime(2020, 1, 1),
                            service_expiration=datetime(2021, 1, 1))
        assert endpoint.is_active(datetime(2020, 6, 1))
        assert not endpoint.is_active(datetime(2022, 1, 1))

    def test_lookup_and_replace(self, sg):
        process = Process(ProcessIdentifier('p', 'v'), [self._endpoint()])
        si = ServiceInformation(sg, DocumentTypeIdentifier('d', 'v'), [process])

        assert si.id == 'iso6523-actorid-upis::0088:1/d::v'
        assert si.get_process_of_id(ProcessIdentifier('p', 'v')) is process

        process.set_endpoint(Endpoint('peppol-transport-as4-v2_0', 'https://new.example.org'))
        assert process.get_endpoint_of_transport_profile('peppol-transport-as4-v2_0').endpoint_reference == \
            'https://new.example.org'
        with pytest.raises(ValidationError):
            process.set_endpoint(Endpoint('unknown-profile', 'https://x'))


class TestOtherEntities:

    def test_redirect_requires_target(self):
        sg = ServiceGroup('alice', ParticipantIdentifier('s', 'v'))
        with pytest.raises(ValidationError):
            Redirect(sg, DocumentTypeIdentifier('d', 'v'), '', 'CN=X')

    def test_business_card_entity(self):
        with pytest.raises(ValidationError):
            BusinessCardEntity(names=[], country_code='DK')
        with pytest.raises(ValidationError):
            BusinessCardEntity(names=[BusinessCardName('X')], country_code='DNK')
        with pytest.raises(ValidationError):
            BusinessCardContact()

        assert BusinessCardEntity(names=[BusinessCardName('X')], country_code='at').country_code == 'AT'

    def test_password_hashing(self):
        stored = hash_password('s3cret', iterations=1000)

        assert stored.startswith('pbkdf2_sha256$1000$')
        assert verify_password('s3cret', stored)
        assert not verify_password('wrong', stored)
        assert not verify_password('s3cret', 'garbage')
        assert User('alice', stored).check_password('s3cret')

    def test_settings_update(self):
        settings = RegistrySettings()
        updated = settings.updated(write_to_locator=True)

        assert settings.diff(updated) == Change.CHANGED
        assert updated.diff(RegistrySettings.from_dict(updated.to_dict())) == Change.UNCHANGED
        with pytest.raises(ValidationError):
            settings.updated(unknown=True)

    def test_locator_info_endpoints(self):
        info = LocatorInfo('SML', 'edelivery.example', 'https://sml.example.org/')

        assert info.manage_participant_identifier_endpoint == \
            'https://sml.example.org/manageparticipantidentifier'
        assert len(info.locator_id) == 32
