"""
Storage backend system for the registry.

This package provides the manager contract every storage engine implements,
the registry mapping backend identifiers to provider factories, and the
explicit discovery list of built-in backends.
"""

from .registry import BackendRegistry, Backend
from .provider import ManagerProvider, ManagerBundle
from .discovery import BACKEND_MODULES, discover_backends, create_registry

__all__ = [
    'BackendRegistry', 'Backend', 'ManagerProvider', 'ManagerBundle',
    'BACKEND_MODULES', 'discover_backends', 'create_registry',
]
