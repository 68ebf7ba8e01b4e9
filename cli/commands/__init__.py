"""
CLI command modules.

- extract_commands: parse, lines, tables, batch
- utils_commands: suppliers, version
"""

from . import extract_commands, utils_commands

__all__ = [
    'extract_commands',
    'utils_commands',
]
