"""
Terminal output for the registry CLI.

Status lines go to stdout, except errors which go to stderr so that
`smpregistry participant list > groups.txt` stays clean.
"""

import sys
from typing import Dict


class Colors:
    """ANSI color code constants."""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    RED = '\033[91m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    BLUE = '\033[94m'
    MAGENTA = '\033[95m'
    CYAN = '\033[96m'

    @staticmethod
    def is_supported() -> bool:
        return hasattr(sys.stdout, 'isatty') and sys.stdout.isatty()


# status -> (symbol, color, stream name)
STATUS_STYLES = {
    'success': ('✓', Colors.GREEN, 'stdout'),
    'error': ('✗', Colors.RED, 'stderr'),
    'warning': ('⚠', Colors.YELLOW, 'stdout'),
    'info': ('ℹ', Colors.BLUE, 'stdout'),
    'alert': ('‼', Colors.MAGENTA, 'stderr'),
}

BANNER = r"""
   ____  __  __ ____    ____            _     _
  / ___||  \/  |  _ \  |  _ \ ___  __ _(_)___| |_ _ __ _   _
  \___ \| |\/| | |_) | | |_) / _ \/ _` | / __| __| '__| | | |
   ___) | |  | |  __/  |  _ <  __/ (_| | \__ \ |_| |  | |_| |
  |____/|_|  |_|_|     |_| \_\___|\__, |_|___/\__|_|   \__, |
                                  |___/                |___/
"""

DIAGRAM = """
  RegistryAPI / CLI
        │
        ↓
  RegistrationCoordinator ──────────→ Locator (SML)
        │                               register / deregister
        ↓
  RegistryContext → ManagerBundle → xml | sql | document

  create:  locator register → local create      undo: deregister
  delete:  local delete     → locator deregister
  failed undo → InconsistentState (exit code 2)

Run: smpregistry info backends (for details)
"""


def colorize(text: str, color: str) -> str:
    """Wrap `text` in `color` when stdout is a terminal."""
    if Colors.is_supported():
        return f"{color}{text}{Colors.RESET}"
    return text


def print_status(status: str, message: str):
    symbol, color, stream = STATUS_STYLES[status]
    print(f"{colorize(symbol, color)} {message}", file=getattr(sys, stream))


def print_success(message: str):
    print_status('success', message)


def print_error(message: str):
    print_status('error', message)


def print_warning(message: str):
    print_status('warning', message)


def print_info(message: str):
    print_status('info', message)


def print_alert(message: str):
    """Failures an operator has to act on (locator and registry disagree)."""
    print_status('alert', message)


def print_simple_banner():
    from .. import __version__
    print(colorize(BANNER, Colors.CYAN))
    print(f"    Service Metadata Registry v{__version__}")


def print_diagram():
    print(colorize("Registry Architecture", Colors.BOLD))
    print(DIAGRAM)


def print_section(title: str):
    print(f"\n{colorize(title, Colors.BOLD)}")
    print("─" * len(title))


def print_table_row(col1: str, col2: str, width1: int = 20):
    """Print a simple two-column table row."""
    print(f"  {col1:<{width1}} {col2}")


def print_counts(counts: Dict[str, int]):
    """Right-aligned entity counts, e.g. after a migration."""
    width = max((len(name) for name in counts), default=0)
    for name, count in counts.items():
        print(f"  {name.replace('_', ' '):<{width}} {count:>6}")
