"""
Main entry point for the registry CLI.

Provides command-line access to configuration, participant and user
administration, export and backend migration.
"""

import sys
import argparse
from pathlib import Path
from typing import List, Optional

from . import display
from . import commands


def _add_config_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        '--config', '-c',
        required=True,
        help='Configuration file (YAML)'
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog='smpregistry',
        description='SMP Registry - participant service metadata registry',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  smpregistry init --backend sql --output registry.yaml
  smpregistry validate registry.yaml
  smpregistry user create alice --config registry.yaml
  smpregistry participant create iso6523-actorid-upis::0088:123 --owner alice -c registry.yaml
  smpregistry info backends
        """
    )

    # Global options
    parser.add_argument(
        '--version',
        action='store_true',
        help='Show version and exit'
    )

    parser.add_argument(
        '--diagram',
        action='store_true',
        help='Display architecture diagram and exit'
    )

    # Subcommands
    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # Init command
    init_parser = subparsers.add_parser(
        'init',
        help='Generate configuration template',
        description='Create a new configuration file from a backend template'
    )

    template_dir = Path(__file__).parent / 'templates'
    available_templates = sorted([f.stem for f in template_dir.glob('*.yaml')])

    init_parser.add_argument(
        '--backend', '-b',
        choices=available_templates,
        default='xml',
        help=f'Backend template (available: {", ".join(available_templates)}; default: xml)'
    )
    init_parser.add_argument(
        '--output', '-o',
        default='registry.yaml',
        help='Output file path (default: registry.yaml)'
    )
    init_parser.add_argument(
        '--interactive', '-i',
        action='store_true',
        help='Ask for the settings instead of writing a template'
    )

    # Validate command
    validate_parser = subparsers.add_parser(
        'validate',
        help='Validate configuration file',
        description='Check configuration file for errors and resolve its backend'
    )
    validate_parser.add_argument(
        'config',
        help='Configuration file to validate'
    )
    validate_parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress detailed output'
    )

    # Info command
    info_parser = subparsers.add_parser(
        'info',
        help='Display system information',
        description='Show version, backends or examples'
    )
    info_parser.add_argument(
        'target',
        nargs='?',
        choices=['version', 'backends', 'examples'],
        default='version',
        help='Information to display (default: version)'
    )

    # Participant command
    participant_parser = subparsers.add_parser(
        'participant',
        help='Create, delete or list service groups',
        description='Manage service groups; create and delete keep the locator in sync'
    )
    participant_actions = participant_parser.add_subparsers(dest='action', required=True)

    create_parser_ = participant_actions.add_parser('create', help='Create a service group')
    create_parser_.add_argument('participant', help='Participant identifier (scheme::value)')
    create_parser_.add_argument('--owner', required=True, help='Owning user ID')
    create_parser_.add_argument('--extension', help='Extension XML fragment(s)')
    _add_config_argument(create_parser_)

    delete_parser = participant_actions.add_parser('delete', help='Delete a service group and its data')
    delete_parser.add_argument('participant', help='Participant identifier (scheme::value)')
    _add_config_argument(delete_parser)

    list_parser = participant_actions.add_parser('list', help='List service groups')
    list_parser.add_argument('--owner', help='Only groups of this user')
    _add_config_argument(list_parser)

    # User command
    user_parser = subparsers.add_parser(
        'user',
        help='Create or delete users',
        description='Manage the users that own service groups'
    )
    user_actions = user_parser.add_subparsers(dest='action', required=True)

    user_create = user_actions.add_parser('create', help='Create a user')
    user_create.add_argument('user_id', help='User ID')
    user_create.add_argument('--password', help='Password (prompted if omitted)')
    _add_config_argument(user_create)

    user_delete = user_actions.add_parser('delete', help='Delete a user')
    user_delete.add_argument('user_id', help='User ID')
    _add_config_argument(user_delete)

    # Export command
    export_parser = subparsers.add_parser(
        'export',
        help='Export a participant overview',
        description='Write one CSV row per service group'
    )
    _add_config_argument(export_parser)
    export_parser.add_argument(
        '--output', '-o',
        default='participants.csv',
        help='Output CSV path (default: participants.csv)'
    )

    # Migrate command
    migrate_parser = subparsers.add_parser(
        'migrate',
        help='Copy all data into another backend',
        description='Copy every entity from the configured backend into another one. '
                    'The locator is not contacted.'
    )
    _add_config_argument(migrate_parser)
    migrate_parser.add_argument(
        '--target-backend', '-t',
        required=True,
        help='Target backend ID (see: smpregistry info backends)'
    )
    migrate_parser.add_argument(
        '--target-param', '-p',
        action='append',
        help='Target backend parameter as key=value (repeatable)'
    )
    migrate_parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Hide the progress bar'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for CLI.

    Args:
        argv: Command-line arguments (defaults to sys.argv)

    Returns:
        Exit code (0 for success, 1 for failure, 2 for locator/registry disagreement)
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    # Handle global flags
    if args.version:
        commands.print_version()
        return 0

    if args.diagram:
        display.print_diagram()
        return 0

    # No command specified
    if not args.command:
        parser.print_help()
        return 0

    handlers = {
        'init': commands.init_config,
        'validate': commands.validate_config,
        'info': commands.show_info,
        'participant': commands.participant_command,
        'user': commands.user_command,
        'export': commands.export_participants,
        'migrate': commands.migrate_backend,
    }

    try:
        return handlers[args.command](args)
    except KeyboardInterrupt:
        display.print_warning("\nOperation cancelled by user")
        return 1


if __name__ == '__main__':
    sys.exit(main())
