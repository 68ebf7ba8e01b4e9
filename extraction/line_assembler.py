"""
Groups positioned tokens into horizontal lines.

Tokens are clustered by rounding their y coordinate to a fixed tolerance.
The clustering is coarse on purpose: tokens of overlapping columns on the
same row end up in one line, and each parser separates them with its own
column thresholds.
"""

import math
from collections import defaultdict
from typing import Dict, Iterable, List, Tuple

from .models import PositionedToken, TextLine


DEFAULT_TOLERANCE = 0.5


def round_to_tolerance(value: float, tolerance: float = DEFAULT_TOLERANCE) -> float:
    """Round half-up to the nearest multiple of ``tolerance``."""
    return round(math.floor(value / tolerance + 0.5) * tolerance, 6)


def assemble_lines(tokens: Iterable[PositionedToken],
                   tolerance: float = DEFAULT_TOLERANCE) -> List[TextLine]:
    """
    Cluster tokens into lines sorted top to bottom (page by page).

    Args:
        tokens: Positioned tokens of the whole document
        tolerance: Vertical clustering step in layout units

    Returns:
        Lines with tokens sorted by x; blank lines are dropped
    """
    groups: Dict[Tuple[int, float], List[PositionedToken]] = defaultdict(list)
    for token in tokens:
        groups[(token.page, round_to_tolerance(token.y, tolerance))].append(token)

    lines = []
    for (page, y_position), members in groups.items():
        line = TextLine.from_tokens(members, y_position=y_position, page=page)
        if line.text:
            lines.append(line)

    lines.sort(key=lambda line: (line.page, line.y_position))
    return lines


def flatten_tokens(lines: Iterable[TextLine]) -> List[PositionedToken]:
    """All tokens of the given lines with surrounding whitespace stripped."""
    return [token.stripped() for line in lines for token in line.items if token.text.strip()]
