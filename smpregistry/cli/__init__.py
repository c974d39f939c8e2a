"""
Registry CLI - command-line operator tooling.

Configuration templates, validation, participant and user administration,
export and backend migration without writing Python code.
"""

from .main import main

__all__ = ['main']
