"""
CLI Context module.

This module provides the shared context and decorator used across CLI
commands, preventing circular imports between cli.main and command modules.
"""

import click

from extraction.config import ExtractionConfig, get_config
from extraction.orchestrator import InvoiceExtractor


class CLIContext:
    """Context object to share state between CLI commands."""

    def __init__(self):
        self.verbose = False
        self.quiet = False
        self.config = None
        self.extractor = None

    def get_config(self) -> ExtractionConfig:
        """Configuration read from the environment on first use."""
        if self.config is None:
            self.config = get_config()
        return self.config

    def get_extractor(self) -> InvoiceExtractor:
        """Get or create the invoice extractor."""
        if self.extractor is None:
            self.extractor = InvoiceExtractor(config=self.get_config())
        return self.extractor


# Pass context between commands
pass_context = click.make_pass_decorator(CLIContext, ensure=True)
