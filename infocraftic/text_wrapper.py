"""Greedy word wrapping and font sizing based on an average glyph width."""

import logging
import math
from typing import List

logger = logging.getLogger(__name__)

# Average glyph advance as a fraction of the font size for Montserrat / Open Sans.
CHAR_WIDTH_FACTOR = 0.6


def max_chars_per_line(
    usable_width: float,
    font_size: float,
    char_width_factor: float = CHAR_WIDTH_FACTOR
) -> int:
    """
    Estimate how many characters fit on one line.

    Args:
        usable_width: Width available to the text in pixels
        font_size: Font size in pixels
        char_width_factor: Average glyph width as a fraction of font size

    Returns:
        Character budget, never below 1
    """
    if font_size <= 0:
        return 1
    return max(1, math.floor(usable_width / (font_size * char_width_factor)))


def wrap(text: str, max_chars_per_line: int) -> List[str]:
    """
    Greedily wrap text into lines of at most ``max_chars_per_line`` characters.

    Words are split on any whitespace and never broken: a word longer than the
    budget is placed alone on its own line.

    Args:
        text: Source text
        max_chars_per_line: Character budget per line (>= 1)

    Returns:
        Wrapped lines, empty for blank input

    Raises:
        ValueError: If the budget is below 1
    """
    if max_chars_per_line < 1:
        raise ValueError(f"max_chars_per_line must be >= 1, got {max_chars_per_line}")

    lines: List[str] = []
    current = ""

    for word in text.split():
        if not current:
            current = word
        elif len(current) + 1 + len(word) <= max_chars_per_line:
            current = f"{current} {word}"
        else:
            lines.append(current)
            current = word

    if current:
        lines.append(current)

    return lines


def adaptive_font_size(
    text: str,
    max_width: float,
    base_size: float,
    min_size: float,
    char_width_factor: float = CHAR_WIDTH_FACTOR
) -> float:
    """
    Shrink a single-line font size until the estimated text width fits.

    Args:
        text: Text drawn on one line
        max_width: Width available in pixels
        base_size: Preferred font size
        min_size: Smallest acceptable font size
        char_width_factor: Average glyph width as a fraction of font size

    Returns:
        ``base_size`` when the text fits, otherwise the proportional size
        clamped to ``min_size``
    """
    min_size = min(min_size, base_size)
    length = len(text)
    if length == 0:
        return base_size

    estimated_width = length * base_size * char_width_factor
    if estimated_width <= max_width:
        return base_size

    calculated = math.floor((max_width / length) / char_width_factor)
    size = max(calculated, min_size)
    logger.debug(f"Reduced font size {base_size:.1f} -> {size:.1f} for {length} characters")
    return size
