"""
Backend discovery for the registry.

The set of available backends is the explicit module list BACKEND_MODULES.
Each module is imported and its backend class (a Backend subclass whose
name ends with 'Backend', defined in that module) is registered under its
`__backend_id__`. Registration order follows the list.

Example:
    >>> registry = BackendRegistry(discovery=discover_backends)
    >>> registry.reinitialize()
    >>> registry.list_ids()
    ['xml', 'sql', 'document']
"""

import importlib
import inspect
from typing import Iterable, Optional, Tuple

from ..errors import ConfigurationError
from .registry import Backend, BackendRegistry

BACKEND_MODULES = (
    'smpregistry.backends.storage.xml',
    'smpregistry.backends.storage.sql',
    'smpregistry.backends.storage.document',
)


def discover_backends(registry: BackendRegistry, modules: Iterable[str] = BACKEND_MODULES) -> int:
    """
    Import every backend module and register its backend class.

    Args:
        registry: Registry to populate
        modules: Fully qualified module names

    Returns:
        Number of backends registered

    Raises:
        ConfigurationError: If a module defines no valid backend class
        DuplicateBackend: If two modules declare the same backend id
    """
    registered_count = 0

    for module_name in modules:
        module = importlib.import_module(module_name)
        backend_class = _find_backend_class(module)

        if backend_class is None:
            raise ConfigurationError(f"No backend class found in {module_name}")

        is_valid, error = validate_backend_metadata(backend_class)
        if not is_valid:
            raise ConfigurationError(error)

        registry.register(backend_class.__backend_id__, backend_class)
        registered_count += 1

    return registered_count


def create_registry(modules: Iterable[str] = BACKEND_MODULES) -> BackendRegistry:
    """Build a registry over `modules` and run discovery once."""
    modules = tuple(modules)
    registry = BackendRegistry(discovery=lambda target: discover_backends(target, modules))
    registry.reinitialize()
    return registry


def _find_backend_class(module):
    """
    Find backend class in module.

    Looks for a class that:
    - Ends with 'Backend'
    - Is defined in the module (not imported)
    - Inherits from Backend
    """
    for name, obj in inspect.getmembers(module, inspect.isclass):
        if (name.endswith('Backend') and
            obj.__module__ == module.__name__ and
            issubclass(obj, Backend) and
            obj is not Backend):
            return obj

    return None


def validate_backend_metadata(backend_class) -> Tuple[bool, Optional[str]]:
    """
    Validate that a backend class has proper metadata.

    Returns:
        (is_valid, error_message) tuple
    """
    if not getattr(backend_class, '__backend_id__', None):
        return False, f"{backend_class.__name__} missing '__backend_id__' attribute"

    if not isinstance(backend_class.description, str):
        return False, f"{backend_class.__name__}.description must be a string"

    if not isinstance(backend_class.required_params, (list, tuple)):
        return False, f"{backend_class.__name__}.required_params must be a list"

    if not isinstance(backend_class.optional_params, (list, tuple)):
        return False, f"{backend_class.__name__}.optional_params must be a list"

    return True, None
