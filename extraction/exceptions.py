"""
Custom exceptions for invoice extraction operations.

This module defines specific exception classes for the different ways a
supplier invoice can fail to turn into structured data: the PDF cannot be
decoded at all, the decoded text has no recognizable table structure, a
single row cannot be reduced to a line item, or the table backend fails.
"""

from typing import Optional, Dict, Any, List


class PDFProcessingError(Exception):
    """Base exception for all invoice extraction errors."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.pdf_path = pdf_path
        self.details = details or {}

    def __str__(self) -> str:
        base_msg = super().__str__()
        if self.pdf_path:
            base_msg = f"{base_msg} (PDF: {self.pdf_path})"
        return base_msg


class PDFReadabilityError(PDFProcessingError):
    """Raised when a PDF file cannot be opened (missing, corrupt, encrypted)."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 original_error: Optional[Exception] = None):
        super().__init__(message, pdf_path)
        self.original_error = original_error
        if original_error:
            self.details['original_error'] = str(original_error)
            self.details['error_type'] = type(original_error).__name__


class TextExtractionError(PDFProcessingError):
    """Raised when positioned text cannot be extracted from a PDF."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 page_number: Optional[int] = None,
                 extraction_method: Optional[str] = None):
        super().__init__(message, pdf_path)
        self.page_number = page_number
        self.extraction_method = extraction_method

        if page_number is not None:
            self.details['page_number'] = page_number
        if extraction_method:
            self.details['extraction_method'] = extraction_method


class InvoiceParsingError(PDFProcessingError):
    """Raised when invoice data cannot be parsed from the extracted lines."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 parsing_stage: Optional[str] = None,
                 extracted_text: Optional[str] = None):
        super().__init__(message, pdf_path)
        self.parsing_stage = parsing_stage
        if parsing_stage:
            self.details['parsing_stage'] = parsing_stage
        if extracted_text:
            # Store first 500 chars for debugging
            self.details['text_sample'] = extracted_text[:500]


class HeaderNotFoundError(InvoiceParsingError):
    """Raised when a strategy that needs a table header cannot find one."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 expected_labels: Optional[List[str]] = None):
        super().__init__(message, pdf_path, "header_detection")
        self.expected_labels = expected_labels or []

        if self.expected_labels:
            self.details['expected_labels'] = self.expected_labels


class LineItemParsingError(InvoiceParsingError):
    """Raised when a specific row cannot be reduced to a line item."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 line_number: Optional[int] = None,
                 line_text: Optional[str] = None):
        super().__init__(message, pdf_path, "line_item_parsing")
        self.line_number = line_number
        self.line_text = line_text

        if line_number is not None:
            self.details['line_number'] = line_number
        if line_text:
            self.details['line_text'] = line_text


class TableExtractionError(PDFProcessingError):
    """Raised when the out-of-process table backend fails or times out."""

    def __init__(self, message: str, pdf_path: Optional[str] = None,
                 backend: Optional[str] = None,
                 stderr: Optional[str] = None):
        super().__init__(message, pdf_path)
        self.backend = backend
        if backend:
            self.details['backend'] = backend
        if stderr:
            # Keep the tail, which is where tracebacks end
            self.details['stderr'] = stderr[-500:]
