"""
Command implementations for the registry CLI.

Handles init, validate, info, participant, user, export and migrate commands.
Every command returns a process exit code.
"""

import argparse
import getpass
from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd
import yaml

try:
    import questionary
except ImportError:
    questionary = None

from ..backends.discovery import create_registry
from ..backends.migration import migrate_bundle
from ..backends.provider import ManagerBundle
from ..configuration.config import RegistryConfig, load_config
from ..configuration.context import RegistryContext
from ..coordinator import RegistrationCoordinator
from ..domain import ParticipantIdentifier
from ..errors import InconsistentState, RegistryError
from . import display

# Exit code reserved for failures that need operator attention
EXIT_INCONSISTENT = 2


def init_config(args: argparse.Namespace) -> int:
    """
    Generate configuration template.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    output_path = Path(args.output)

    if args.interactive:
        content = prompt_config()
        if content is None:
            return 1
        source = 'interactive'
    else:
        try:
            content = get_template(args.backend)
        except ValueError as e:
            display.print_error(str(e))
            return 1
        source = args.backend

    try:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, 'w') as f:
            f.write(content)
    except OSError as e:
        display.print_error(f"Failed to write config file: {e}")
        return 1

    display.print_success(f"Configuration created: {output_path}")
    display.print_info(f"Template: {source}")
    display.print_info(f"Edit the file and run: smpregistry validate {output_path}")
    return 0


def prompt_config() -> Optional[str]:
    """Ask for the essential settings; returns YAML text or None when cancelled."""
    if questionary is None:
        display.print_error("Interactive mode requires questionary. Install with: pip install smpregistry[cli]")
        return None

    backend = questionary.select("Storage backend:", choices=create_registry().list_ids()).ask()
    if backend is None:
        return None
    if backend == 'sql':
        location = questionary.text("Database file:", default='./registry.db').ask()
        backend_params = {'db_path': location}
    else:
        location = questionary.text("Data directory:", default='./registry-data').ask()
        backend_params = {'root_dir': location}
    if location is None:
        return None

    identifier_type = questionary.select("Identifier policy:", choices=['peppol', 'simple']).ask()
    locator_active = questionary.confirm("Register participants at the locator service?", default=False).ask()
    if identifier_type is None or locator_active is None:
        return None

    locator: Dict[str, Any] = {'active': locator_active}
    if locator_active:
        locator['url'] = questionary.text("Locator management URL:").ask()
        locator['smp_id'] = questionary.text("SMP ID at the locator:").ask()
        locator['client_cert'] = questionary.text("Client certificate (PEM path):").ask() or None
        if locator['url'] is None or locator['smp_id'] is None:
            return None

    data = {
        'backend': backend,
        'backend_params': backend_params,
        'identifier_type': identifier_type,
        'locator': locator,
    }
    try:
        RegistryConfig.from_dict(data)
    except RegistryError as e:
        display.print_error(f"Invalid answers: {e}")
        return None
    return yaml.safe_dump(data, sort_keys=False)


def validate_config(args: argparse.Namespace) -> int:
    """
    Validate configuration file and resolve its backend.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    try:
        config = load_config(args.config)
    except RegistryError as e:
        display.print_error(f"Invalid configuration: {e}")
        return 1

    registry = create_registry()
    factory = registry.resolve(config.backend)
    if factory is None:
        display.print_error(
            f"Unknown backend '{config.backend}'. Known backends: {', '.join(registry.list_ids())}"
        )
        return 1

    validate = getattr(factory, 'validate_params', None)
    if validate is not None:
        try:
            validate(config.backend_params)
        except RegistryError as e:
            display.print_error(f"Invalid backend_params: {e}")
            return 1

    display.print_success(f"Configuration is valid: {args.config}")
    if not args.quiet:
        display.print_table_row('backend', config.backend)
        for key, value in config.backend_params.items():
            display.print_table_row(f"  {key}", str(value))
        display.print_table_row('identifier_type', config.identifier_type)
        display.print_table_row('locator', 'active' if config.locator.active else 'inactive')
        display.print_table_row('directory', 'enabled' if config.directory.enabled else 'disabled')
    return 0


def show_info(args: argparse.Namespace) -> int:
    """
    Display system information.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code
    """
    if args.target == 'backends':
        print_backends_info()
    elif args.target == 'examples':
        print_examples()
    else:
        print_version()
    return 0


# ==================== Participants ====================

def participant_command(args: argparse.Namespace) -> int:
    """Dispatch `participant create|delete|list`."""
    try:
        with open_context(args.config) as context:
            if args.action == 'create':
                return create_participant(context, args.participant, args.owner, args.extension)
            if args.action == 'delete':
                return delete_participant(context, args.participant)
            return list_participants(context, args.owner)
    except RegistryError as e:
        display.print_error(str(e))
        return 1


def create_participant(context: RegistryContext, participant: str, owner: str,
                       extension: Optional[str] = None) -> int:
    pid = ParticipantIdentifier.parse(participant)
    if context.user_manager.get_user_of_id(owner) is None:
        display.print_error(f"Unknown user '{owner}'. Create it with: smpregistry user create {owner}")
        return 1

    coordinator = RegistrationCoordinator(context)
    try:
        with coordinator.create_service_group(owner, pid, extension) as op:
            op.raise_for_error()
            display.print_success(f"Created service group {op.result.service_group.id} (owner {owner})")
    except InconsistentState as e:
        display.print_alert(f"Locator and registry disagree about {pid.uri_encoded}: {e}")
        return EXIT_INCONSISTENT
    except RegistryError as e:
        display.print_error(f"Could not create {pid.uri_encoded}: {e}")
        return 1
    return 0


def delete_participant(context: RegistryContext, participant: str) -> int:
    pid = ParticipantIdentifier.parse(participant)
    coordinator = RegistrationCoordinator(context)
    try:
        with coordinator.delete_service_group(pid) as op:
            op.raise_for_error()
            if op.result.change.is_changed:
                display.print_success(f"Deleted service group {pid.uri_encoded}")
            else:
                display.print_warning(f"Service group {pid.uri_encoded} did not exist")
    except InconsistentState as e:
        display.print_alert(f"Locator and registry disagree about {pid.uri_encoded}: {e}")
        return EXIT_INCONSISTENT
    except RegistryError as e:
        display.print_error(f"Could not delete {pid.uri_encoded}: {e}")
        return 1
    return 0


def list_participants(context: RegistryContext, owner: Optional[str] = None) -> int:
    manager = context.service_group_manager
    groups = manager.get_all_service_groups_of_owner(owner) if owner else manager.get_all_service_groups()

    display.print_section(f"Service groups ({len(groups)})")
    for sg in groups:
        display.print_table_row(sg.participant.uri_encoded, sg.owner_id, width1=48)
    return 0


# ==================== Users ====================

def user_command(args: argparse.Namespace) -> int:
    """Dispatch `user create|delete`."""
    try:
        with open_context(args.config) as context:
            if args.action == 'create':
                password = args.password or getpass.getpass(f"Password for {args.user_id}: ")
                context.user_manager.create_user(args.user_id, password)
                display.print_success(f"Created user {args.user_id}")
                return 0

            change = context.user_manager.delete_user(args.user_id)
            if change.is_changed:
                display.print_success(f"Deleted user {args.user_id}")
            else:
                display.print_warning(f"User {args.user_id} did not exist")
            return 0
    except RegistryError as e:
        display.print_error(str(e))
        return 1


# ==================== Export / migrate ====================

def export_participants(args: argparse.Namespace) -> int:
    """Write one CSV row per service group."""
    try:
        with open_context(args.config) as context:
            df = participant_overview(context)
    except RegistryError as e:
        display.print_error(str(e))
        return 1

    output_path = Path(args.output)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(output_path, index=False)
    display.print_success(f"Exported {len(df)} service groups to {output_path}")
    return 0


EXPORT_COLUMNS = [
    'participant', 'service_group_id', 'owner', 'service_information',
    'redirects', 'document_types', 'business_card_entities',
]


def participant_overview(context: RegistryContext) -> pd.DataFrame:
    rows = []
    for sg in context.service_group_manager.get_all_service_groups():
        infos = context.service_information_manager.get_all_service_information_of_service_group(sg)
        redirects = context.redirect_manager.get_all_redirects_of_service_group(sg)
        card = context.business_card_manager.get_business_card_of_service_group(sg)
        document_types = [si.document_type.uri_encoded for si in infos]
        document_types += [r.document_type.uri_encoded for r in redirects]
        rows.append({
            'participant': sg.participant.uri_encoded,
            'service_group_id': sg.id,
            'owner': sg.owner_id,
            'service_information': len(infos),
            'redirects': len(redirects),
            'document_types': ' '.join(sorted(document_types)),
            'business_card_entities': card.entity_count if card is not None else 0,
        })
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def migrate_backend(args: argparse.Namespace) -> int:
    """Copy all entities from the configured backend into another backend."""
    try:
        target_params = parse_params(args.target_param or [])
    except ValueError as e:
        display.print_error(str(e))
        return 1

    try:
        with open_context(args.config) as context:
            factory = context.backend_registry.resolve(args.target_backend)
            if factory is None:
                display.print_error(
                    f"Unknown target backend '{args.target_backend}'. "
                    f"Known backends: {', '.join(context.backend_registry.list_ids())}"
                )
                return 1

            target = ManagerBundle(factory(target_params, context), backend_id=args.target_backend)
            try:
                counts = migrate_bundle(context.managers, target, show_progress=not args.quiet,
                                        logger=context.logger)
            finally:
                target.close()
    except RegistryError as e:
        display.print_error(f"Migration failed: {e}")
        return 1

    display.print_success(f"Migrated into '{args.target_backend}'")
    display.print_counts(counts)
    return 0


# ==================== Helpers ====================

def open_context(config_path: str) -> RegistryContext:
    """Context for `config_path` with its backend installed."""
    context = RegistryContext.from_config_file(config_path)
    try:
        context.init_from_configuration()
    except RegistryError:
        context.close()
        raise
    return context


def parse_params(pairs: List[str]) -> Dict[str, str]:
    """Parse repeated `key=value` arguments."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise ValueError(f"Expected key=value, got '{pair}'")
        params[key.strip()] = value.strip()
    return params


def get_template(template_name: str) -> str:
    """Get configuration template by backend name."""
    template_dir = Path(__file__).parent / 'templates'
    template_file = template_dir / f"{template_name}.yaml"

    if not template_file.exists():
        available = ', '.join(sorted(f.stem for f in template_dir.glob('*.yaml')))
        raise ValueError(f"Unknown template '{template_name}'. Available: {available}")

    with open(template_file, 'r') as f:
        return f.read()


def print_version():
    """Print version information."""
    from .. import __version__
    display.print_simple_banner()
    print(f"Version: {__version__}")
    print("Python API: Available via 'from smpregistry import RegistryContext, RegistryAPI'")


def print_backends_info():
    """Print information about available backends."""
    display.print_section("Available Backends")

    backends = create_registry().describe()
    if not backends:
        print("  No backends registered")
        return

    for backend_id, description in backends.items():
        display.print_table_row(backend_id, description, width1=12)


def print_examples():
    """Print usage examples."""
    display.print_section("Usage Examples")

    examples = [
        ("Generate config template", "smpregistry init --backend sql --output registry.yaml"),
        ("Validate config", "smpregistry validate registry.yaml"),
        ("Create a user", "smpregistry user create alice --config registry.yaml"),
        ("Register a participant",
         "smpregistry participant create iso6523-actorid-upis::0088:123 --owner alice --config registry.yaml"),
        ("List participants", "smpregistry participant list --config registry.yaml"),
        ("Export overview", "smpregistry export --config registry.yaml --output participants.csv"),
        ("Move to SQLite", "smpregistry migrate --config registry.yaml --target-backend sql "
                           "--target-param db_path=registry.db"),
    ]

    for desc, cmd in examples:
        print(f"\n  {desc}:")
        print(f"  $ {cmd}")

    print()
