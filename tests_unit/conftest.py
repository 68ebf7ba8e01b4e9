"""
Shared builders for positioned tokens and lines.

No PDFs are needed: the strategies only see ``TextLine`` objects, so tests
build them directly with explicit x positions.
"""

from typing import Iterable, Sequence, Tuple

import pytest

from extraction.models import PositionedToken, TextLine


def _line_from_positions(words: Iterable[Tuple[float, str]], y: float, page: int) -> TextLine:
    tokens = [PositionedToken(page=page, x=float(x), y=y, text=text) for x, text in words]
    return TextLine.from_tokens(tokens, y_position=y, page=page)


@pytest.fixture
def make_line():
    """Line of single-word tokens spaced ``step`` units apart."""
    def build(text: str, y: float = 10.0, page: int = 1, start: float = 2.0,
              step: float = 2.0) -> TextLine:
        words = [(start + index * step, word) for index, word in enumerate(text.split())]
        return _line_from_positions(words, y, page)
    return build


@pytest.fixture
def line_at():
    """Line of tokens at explicit x positions: ``line_at([(2, 'SKU1'), (8, 'Whey')], y=12)``."""
    def build(words: Sequence[Tuple[float, str]], y: float = 10.0, page: int = 1) -> TextLine:
        return _line_from_positions(words, y, page)
    return build
