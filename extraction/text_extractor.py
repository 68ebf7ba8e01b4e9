"""
Positioned text extraction from PDF invoices.

This module reads every text run of a PDF together with its page and x/y
position, which is the raw material the supplier parsers rebuild table rows
from. Runs are read with pdfplumber; pypdf is used up front to reject
unreadable and password-protected files with a clear message.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union
from urllib.parse import unquote

import pdfplumber
from pypdf import PdfReader
from pypdf.errors import PdfReadError

from .config import ExtractionConfig, get_config
from .exceptions import PDFProcessingError, PDFReadabilityError, TextExtractionError
from .line_assembler import assemble_lines
from .models import PositionedToken, TextLine


logger = logging.getLogger(__name__)

PERCENT_ESCAPE_RE = re.compile(r'%[0-9A-Fa-f]{2}')


@dataclass
class StructuredText:
    """Result of reading a PDF into assembled lines."""
    success: bool
    lines: List[TextLine] = field(default_factory=list)
    error: Optional[str] = None
    page_count: int = 0


def decode_run_text(text: str) -> str:
    """Undo percent-style escaping ("%C3%A9" -> "é") left in extracted glyph text."""
    if text and PERCENT_ESCAPE_RE.search(text):
        return unquote(text)
    return text


def _font_style(font_name: Optional[str]) -> Optional[str]:
    if not font_name:
        return None
    lowered = font_name.lower()
    if 'italic' in lowered or 'oblique' in lowered:
        return 'italic'
    return 'normal'


def _font_weight(font_name: Optional[str]) -> Optional[str]:
    if not font_name:
        return None
    lowered = font_name.lower()
    if 'bold' in lowered or 'black' in lowered or 'heavy' in lowered:
        return 'bold'
    return 'normal'


def _font_color(color: Any) -> Optional[Tuple[Any, ...]]:
    """Fill colour as a tuple; pdfplumber reports a number, a list or a pattern name."""
    if color is None:
        return None
    if isinstance(color, (list, tuple)):
        return tuple(color)
    return (color,)


def validate_pdf_readability(pdf_path: Path) -> int:
    """
    Validate that the PDF file can be read and accessed.

    Args:
        pdf_path: Path to the PDF file

    Returns:
        Number of pages in the document

    Raises:
        PDFReadabilityError: If the PDF cannot be read
    """
    if not pdf_path.exists():
        raise PDFReadabilityError(f"PDF file not found: {pdf_path}", pdf_path=str(pdf_path))
    if not pdf_path.is_file():
        raise PDFReadabilityError(f"Path is not a file: {pdf_path}", pdf_path=str(pdf_path))

    try:
        reader = PdfReader(str(pdf_path))
        if reader.is_encrypted:
            # Owner-password-only files open with an empty user password
            if not reader.decrypt(''):
                raise PDFReadabilityError("PDF is password-protected", pdf_path=str(pdf_path))
        page_count = len(reader.pages)
    except PDFReadabilityError:
        raise
    except (PdfReadError, ValueError, OSError) as e:
        raise PDFReadabilityError(f"PDF syntax error: {e}", pdf_path=str(pdf_path),
                                  original_error=e) from e

    if page_count == 0:
        raise PDFReadabilityError("PDF contains no pages", pdf_path=str(pdf_path))
    return page_count


def extract_positioned_tokens(pdf_path: Union[str, Path],
                              config: Optional[ExtractionConfig] = None) -> List[PositionedToken]:
    """
    Extract every text run of the PDF with its position.

    Runs are pdfplumber words read with ``keep_blank_chars=True`` so that
    glyphs printed next to each other stay one run while column gaps split
    them. Positions are converted to layout units.

    Raises:
        PDFReadabilityError: If the file cannot be opened
        TextExtractionError: If no text can be read from any page
    """
    config = config or get_config()
    pdf_path = Path(pdf_path)
    validate_pdf_readability(pdf_path)

    scale = config.points_per_unit or 1.0
    tokens: List[PositionedToken] = []

    try:
        with pdfplumber.open(pdf_path) as pdf:
            logger.info(f"[TEXT] PDF opened successfully, found {len(pdf.pages)} pages")

            for page_number, page in enumerate(pdf.pages, 1):
                try:
                    words = page.extract_words(keep_blank_chars=True,
                                               extra_attrs=['fontname', 'size', 'non_stroking_color'])
                except Exception as e:
                    logger.error(f"[TEXT] Failed to extract runs from page {page_number}: {e}")
                    continue

                page_tokens = 0
                for word in words:
                    text = decode_run_text(word.get('text', ''))
                    if not text.strip():
                        continue
                    font_name = word.get('fontname')
                    tokens.append(PositionedToken(
                        page=page_number,
                        x=round(float(word['x0']) / scale, 3),
                        y=round(float(word['top']) / scale, 3),
                        text=text,
                        font_size=round(float(word['size']), 2) if word.get('size') else None,
                        font_name=font_name,
                        font_style=_font_style(font_name),
                        font_weight=_font_weight(font_name),
                        font_color=_font_color(word.get('non_stroking_color')),
                    ))
                    page_tokens += 1
                logger.debug(f"[TEXT] Page {page_number}: {page_tokens} runs")
    except PDFProcessingError:
        raise
    except Exception as e:
        logger.error(f"[TEXT] Text extraction failed with unexpected error: {e}")
        raise TextExtractionError(f"Error during text extraction: {e}",
                                  pdf_path=str(pdf_path),
                                  extraction_method='pdfplumber') from e

    if not tokens:
        raise TextExtractionError("No text could be extracted from PDF",
                                  pdf_path=str(pdf_path), extraction_method='pdfplumber')

    logger.info(f"[TEXT] Extracted {len(tokens)} positioned runs")
    return tokens


def extract_structured_text(pdf_path: Union[str, Path],
                            config: Optional[ExtractionConfig] = None) -> StructuredText:
    """
    Read a PDF into lines of positioned tokens.

    Never raises for unreadable documents; the error message is returned in
    the envelope instead.
    """
    config = config or get_config()
    try:
        tokens = extract_positioned_tokens(pdf_path, config)
    except PDFProcessingError as e:
        logger.error(f"[TEXT] {e}")
        return StructuredText(success=False, error=str(e))

    lines = assemble_lines(tokens, tolerance=config.line_tolerance)
    pages = max(token.page for token in tokens)
    return StructuredText(success=True, lines=lines, page_count=pages)


async def extract_structured_text_async(pdf_path: Union[str, Path],
                                        config: Optional[ExtractionConfig] = None) -> StructuredText:
    """Run :func:`extract_structured_text` without blocking the event loop."""
    return await asyncio.to_thread(extract_structured_text, pdf_path, config)
