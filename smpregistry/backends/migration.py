"""
Copy every entity from one backend into another.

Used when an installation switches storage engines. Works purely through the
manager contracts, so any pair of backends can be combined. The locator
service is never contacted: the participants stay registered to the same
registry.
"""

from typing import Dict

from tqdm.auto import tqdm

from ..errors import NotFound
from .provider import ManagerBundle


def migrate_bundle(source: ManagerBundle, target: ManagerBundle, show_progress: bool = True,
                   logger=None) -> Dict[str, int]:
    """
    Copy all entities from `source` into `target`.

    Existing service groups in the target are updated, registrations are
    merged. Locator info entries get fresh IDs in the target.

    Args:
        source: Manager bundle to read from
        target: Manager bundle to write into
        show_progress: Show a tqdm progress bar over the service groups
        logger: Optional registry logger

    Returns:
        Number of copied entities per kind
    """
    counts = {
        'service_groups': 0,
        'service_information': 0,
        'redirects': 0,
        'business_cards': 0,
        'users': 0,
        'transport_profiles': 0,
        'locator_infos': 0,
    }

    for user in source.user_manager.get_all_users():
        target.user_manager.save_user(user)
        counts['users'] += 1

    target.settings_manager.update_settings(**source.settings_manager.get_settings().to_dict())

    for profile in source.transport_profile_manager.get_all_transport_profiles():
        manager = target.transport_profile_manager
        if manager.contains_transport_profile_with_id(profile.profile_id):
            manager.update_transport_profile(profile.profile_id, profile.name, profile.deprecated)
        else:
            manager.create_transport_profile(profile.profile_id, profile.name, profile.deprecated)
        counts['transport_profiles'] += 1

    for info in source.locator_info_manager.get_all_locator_infos():
        target.locator_info_manager.create_locator_info(
            info.display_name, info.dns_zone, info.management_service_url, info.client_certificate_required,
        )
        counts['locator_infos'] += 1

    service_groups = source.service_group_manager.get_all_service_groups()
    for sg in tqdm(service_groups, desc="Migrating service groups", unit="sg", disable=not show_progress):
        _copy_service_group(source, target, sg, counts)

    if logger is not None:
        logger.info('MIGRATE', f"Copied {counts['service_groups']} service groups "
                               f"from '{source.backend_id}' to '{target.backend_id}'")
    return counts


def _copy_service_group(source: ManagerBundle, target: ManagerBundle, sg, counts: Dict[str, int]) -> None:
    sg_manager = target.service_group_manager
    if sg_manager.contains_service_group_with_id(sg.participant):
        sg_manager.update_service_group(sg.participant, sg.owner_id, sg.extensions)
    else:
        sg_manager.create_service_group(sg.owner_id, sg.participant, sg.extensions)
    target_sg = sg_manager.get_service_group_of_id(sg.participant)
    if target_sg is None:
        raise NotFound(f"Service group {sg.id} vanished from the migration target")
    counts['service_groups'] += 1

    for si in source.service_information_manager.get_all_service_information_of_service_group(sg):
        si.service_group = target_sg
        target.service_information_manager.merge_service_information(si)
        counts['service_information'] += 1

    for redirect in source.redirect_manager.get_all_redirects_of_service_group(sg):
        target.redirect_manager.create_or_update_redirect(
            target_sg, redirect.document_type, redirect.target_href, redirect.subject_unique_identifier,
            certificate=redirect.certificate, extension=redirect.extensions,
        )
        counts['redirects'] += 1

    card = source.business_card_manager.get_business_card_of_service_group(sg)
    if card is not None:
        target.business_card_manager.create_or_update_business_card(target_sg, card.entities)
        counts['business_cards'] += 1
