"""
Custom exception classes for the CLI interface.

Each exception carries the process exit code the command ends with:
1 generic, 3 missing folder, 6 failed extraction.
"""

from typing import Optional


class CLIError(Exception):
    """Base exception for CLI-related errors."""

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.exit_code = exit_code


class DirectoryNotFoundError(CLIError):
    """Raised when the invoice folder given to a command does not exist."""

    def __init__(self, directory_path: str):
        super().__init__(f"Directory not found: {directory_path}", exit_code=3)


class ProcessingError(CLIError):
    """Raised when an invoice cannot be extracted."""

    def __init__(self, message: str, pdf_path: Optional[str] = None):
        if pdf_path and pdf_path not in message:
            message = f"{message} ({pdf_path})"
        super().__init__(f"Processing Error: {message}", exit_code=6)
        self.pdf_path = pdf_path
