"""
CLI runner module.

Provides commands:
- init-config: Write default configuration
- validate: Normalize + reconcile, show flags
- edit: Correct one field and re-validate
- export: CSV / OFX export (refused while blocked)
- hashes: Duplicate-detection hashes
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
