"""
Error handling decorator shared by the CLI commands.

Commands raise :class:`cli.exceptions.CLIError` subclasses; the decorator
prints the message with recovery hints and exits with the error's code.
"""

import logging
import sys
from functools import wraps
from typing import Any, Callable, Dict, Optional

from cli.exceptions import CLIError, ProcessingError
from cli.formatters import print_error, print_info
from extraction.exceptions import PDFReadabilityError, PDFProcessingError, TableExtractionError


logger = logging.getLogger(__name__)


def _suggest_recovery(error: Exception) -> None:
    if isinstance(error, PDFReadabilityError):
        print_info("Recovery suggestions:")
        print_info("  1. Verify the file path is correct")
        print_info("  2. Check that the PDF opens in a viewer and is not password-protected")
    elif isinstance(error, TableExtractionError):
        print_info("Recovery suggestions:")
        print_info("  1. Retry without --use-tables to use the line strategies")
        print_info("  2. Raise INVOICE_PARSER_TABLE_TIMEOUT for very large documents")


def error_handler(error_context: Optional[Dict[str, Any]] = None):
    """
    Decorator for consistent error handling across commands.

    Args:
        error_context: Additional context logged with unexpected errors

    Returns:
        Decorator that turns errors into a message and an exit code
    """
    error_context = error_context or {}

    def decorator(func: Callable):
        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)

            except CLIError as e:
                logger.debug(f"{func.__name__} failed: {e}")
                print_error(str(e))
                sys.exit(e.exit_code)

            except PDFProcessingError as e:
                logger.error(f"Extraction error in {func.__name__}: {e}")
                error = ProcessingError(str(e))
                print_error(str(error))
                _suggest_recovery(e)
                sys.exit(error.exit_code)

            except KeyboardInterrupt:
                logger.info(f"User interrupted {func.__name__}")
                print_info("\nOperation cancelled by user.")
                sys.exit(130)

            except Exception as e:
                logger.exception(f"Unexpected error in {func.__name__} ({error_context})")
                print_error(f"Unexpected error: {type(e).__name__}: {e}")
                sys.exit(1)

        return wrapper
    return decorator
