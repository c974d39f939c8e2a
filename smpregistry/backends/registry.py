"""
Backend registry: backend identifier -> provider factory.

The registry is an explicit object held by the RegistryContext rather than
process-wide class state. It is populated by a discovery callable (see
discovery.py) and can be rebuilt on demand; readers never observe a
partially rebuilt table.
"""

from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Type

from ..errors import ConfigurationError, DuplicateBackend
from ..utils.locks import ReadWriteLock
from .provider import ManagerProvider

if TYPE_CHECKING:
    from ..configuration.context import RegistryContext


class Backend(ManagerProvider):
    """
    Base class for all storage backends.

    Class Attributes (should be defined in subclasses):
        __backend_id__ (str): Identifier used in configuration (e.g., 'xml', 'sql')
        __backend_name__ (str): Short tag for log messages (e.g., 'XML', 'SQL')
        description (str): Human-readable description of this backend
        required_params (list): Required keys of `backend_params`
        optional_params (list): Optional keys of `backend_params`
    """

    __backend_id__: str = None
    __backend_name__: str = None

    description: str = ""

    required_params: list = []

    optional_params: list = []

    def __init__(self, params: Dict[str, Any], context: 'RegistryContext' = None):
        """
        Initialize backend with parameters.

        Args:
            params: Backend-specific parameters (`backend_params` section)
            context: Registry context supplying logger, identifier policy and
                     settings defaults (optional for standalone use)
        """
        self.validate_params(params)
        self.params = dict(params)
        self.context = context

    @classmethod
    def validate_params(cls, params: Dict[str, Any]) -> None:
        """
        Validate params before instantiation.

        Raises:
            ConfigurationError: If required parameters are missing or unknown ones given

        Example:
            >>> SQLBackend.validate_params({'db_path': 'registry.db'})
        """
        for param in cls.required_params:
            if params.get(param) is None:
                raise ConfigurationError(
                    f"{cls.__name__} requires '{param}' parameter"
                )
        known = set(cls.required_params) | set(cls.optional_params)
        unknown = sorted(set(params) - known)
        if unknown:
            raise ConfigurationError(
                f"{cls.__name__} does not accept parameters {unknown}. "
                f"Known parameters: {sorted(known)}"
            )


BackendFactory = Callable[..., ManagerProvider]
Discovery = Callable[['BackendRegistry'], None]


class BackendRegistry:
    """
    Thread-safe table of backend factories, keyed by backend identifier.

    Many concurrent resolutions, exclusive registration and reinitialization.
    Registration order is preserved by `list_ids()`.

    Example:
        >>> registry = BackendRegistry(discovery=discover_backends)
        >>> registry.reinitialize()
        >>> registry.resolve('sql')
        <class 'smpregistry.backends.storage.sql.SQLBackend'>
    """

    def __init__(self, discovery: Optional[Discovery] = None):
        self._discovery = discovery
        self._factories: Dict[str, BackendFactory] = {}
        self._lock = ReadWriteLock()

    def register(self, backend_id: str, factory: BackendFactory) -> None:
        """
        Register a backend factory.

        Args:
            backend_id: Identifier used in configuration (e.g., 'xml', 'sql')
            factory: Callable producing a ManagerProvider, usually a Backend subclass

        Raises:
            TypeError: If factory is not callable
            DuplicateBackend: If backend_id is already registered
        """
        if not callable(factory):
            raise TypeError(f"Backend factory must be callable, got {type(factory).__name__}")
        if not backend_id:
            raise ConfigurationError("Backend identifier must not be empty")

        with self._lock.write():
            self._register_unlocked(self._factories, backend_id, factory)

    @staticmethod
    def _register_unlocked(table: Dict[str, BackendFactory], backend_id: str,
                           factory: BackendFactory) -> None:
        if backend_id in table:
            raise DuplicateBackend(
                f"Backend '{backend_id}' already registered "
                f"({getattr(table[backend_id], '__name__', table[backend_id])}).",
                extra={'backend_id': backend_id},
            )
        table[backend_id] = factory

    def resolve(self, backend_id: Optional[str]) -> Optional[BackendFactory]:
        """
        Factory registered under `backend_id`, or None for empty/unknown ids.
        """
        if not backend_id:
            return None
        with self._lock.read():
            return self._factories.get(backend_id)

    def list_ids(self) -> List[str]:
        """Snapshot of registered identifiers in registration order."""
        with self._lock.read():
            return list(self._factories)

    def has_backend(self, backend_id: Optional[str]) -> bool:
        return self.resolve(backend_id) is not None

    def describe(self) -> Dict[str, str]:
        """Backend id -> description, for display."""
        with self._lock.read():
            items = list(self._factories.items())
        return {backend_id: getattr(factory, 'description', '') for backend_id, factory in items}

    def reinitialize(self) -> None:
        """
        Clear the table and re-run discovery.

        Discovery populates a private staging registry; the finished table is
        published under the write lock in one step. If discovery fails, the
        previous table stays in place.
        """
        staging = BackendRegistry()
        if self._discovery is not None:
            self._discovery(staging)
        with staging._lock.read():
            table = dict(staging._factories)
        with self._lock.write():
            self._factories = table
