"""
CLI package for the supplier invoice extraction tools.

Commands parse single invoices or folders, and expose the intermediate
stages (assembled lines, backend tables) for debugging new layouts.
"""

from .version import __version__
