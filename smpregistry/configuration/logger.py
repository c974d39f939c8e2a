"""
Tag-prefixed logging for the registry.

Every record carries the component tag of its origin ([COORD], [LOCATOR],
[XML], ...) in the `method` field:

    14:02:11 |    [COORD] | WARN | Request failed after create of ...
"""

import logging
import sys
from typing import Optional

RECORD_FORMAT = '%(asctime)s | %(method)10s | %(levelname)4s | %(message)s'
CONSOLE_DATEFMT = '%H:%M:%S'
FILE_DATEFMT = '%Y-%m-%d %H:%M:%S'

RESET = '\033[0m'

# level name -> (4-letter label, ANSI colour)
LEVEL_STYLES = {
    'DEBUG': ('DBUG', '\033[36m'),
    'INFO': ('INFO', '\033[32m'),
    'WARNING': ('WARN', '\033[33m'),
    'ERROR': ('ERRO', '\033[31m'),
    'CRITICAL': ('CRIT', '\033[35;1m'),
}


class TaggedFormatter(logging.Formatter):
    """Fixed-width level labels; optionally colours the whole line by level."""

    def __init__(self, datefmt: str, colored: bool = False):
        super().__init__(fmt=RECORD_FORMAT, datefmt=datefmt)
        self.colored = colored

    def format(self, record):
        # Records logged without a tag (e.g. by third-party code) still format
        if not hasattr(record, 'method'):
            record.method = '[-]'

        levelname = record.levelname
        label, color = LEVEL_STYLES.get(levelname, (levelname[:4], ''))
        record.levelname = label
        try:
            formatted = super().format(record)
        finally:
            record.levelname = levelname

        if self.colored and color:
            return f"{color}{formatted}{RESET}"
        return formatted


class RegistryLogger:
    """
    Console logger with an optional log file, shared by all components of one
    registry context.

    Example:
        >>> logger = RegistryLogger(console_level='DEBUG', log_file='registry.log')
        >>> logger.warning('COORD', 'Compensating create of iso6523-actorid-upis::0088:1')
    """

    def __init__(self,
                 name: str = "smpregistry",
                 log_file: Optional[str] = None,
                 console_level: str = "INFO",
                 file_level: str = "INFO",
                 use_colors: bool = True):
        """
        Args:
            name: Name of the underlying `logging.Logger`
            log_file: Path to log file (if None, only console logging)
            console_level: Minimum level for console output
            file_level: Minimum level for file output
            use_colors: Colour console lines when stdout is a terminal
        """
        self.name = name
        self.log_file = log_file
        self.console_level = console_level.upper()
        self.file_level = file_level.upper()
        self.colored = use_colors and sys.stdout.isatty()

        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self._reset_handlers()

    def _reset_handlers(self) -> None:
        # A new context replaces the handlers of the previous one
        for handler in list(self.logger.handlers):
            handler.close()
            self.logger.removeHandler(handler)

        console = logging.StreamHandler(sys.stdout)
        console.setLevel(self.console_level)
        console.setFormatter(TaggedFormatter(CONSOLE_DATEFMT, colored=self.colored))
        self.logger.addHandler(console)

        if self.log_file:
            log_file = logging.FileHandler(self.log_file)
            log_file.setLevel(self.file_level)
            log_file.setFormatter(TaggedFormatter(FILE_DATEFMT))
            self.logger.addHandler(log_file)

    def close(self) -> None:
        """Release the log file."""
        for handler in [h for h in self.logger.handlers if isinstance(h, logging.FileHandler)]:
            handler.close()
            self.logger.removeHandler(handler)

    def log(self, level: str, method: str, message: str, *args, **kwargs):
        """Log `message` under the component tag `method` (e.g. 'COORD')."""
        getattr(self.logger, level.lower())(message, *args, extra={'method': f"[{method}]"}, **kwargs)

    def debug(self, method: str, message: str, *args, **kwargs):
        self.log('debug', method, message, *args, **kwargs)

    def info(self, method: str, message: str, *args, **kwargs):
        self.log('info', method, message, *args, **kwargs)

    def warning(self, method: str, message: str, *args, **kwargs):
        self.log('warning', method, message, *args, **kwargs)

    def error(self, method: str, message: str, *args, **kwargs):
        self.log('error', method, message, *args, **kwargs)

    def critical(self, method: str, message: str, *args, **kwargs):
        self.log('critical', method, message, *args, **kwargs)


_default_logger: Optional[RegistryLogger] = None


def default_logger() -> RegistryLogger:
    """Shared logger for components constructed without a registry context."""
    global _default_logger
    if _default_logger is None:
        _default_logger = RegistryLogger()
    return _default_logger
