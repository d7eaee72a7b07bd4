"""
Identifier formatting: parent identifier + zero-padded suffix.

Overflow fails fast. A suffix that needs more digits than the level width
raises SuffixOverflowError instead of widening the identifier, which would
silently break the fixed-width ordering of its siblings.
"""

from __future__ import annotations

from extid.core.ids.exceptions import SuffixOverflowError
from extid.core.ids.scanner import suffix_of


def format_identifier(parent_identifier: str, suffix_value: int, width: int) -> str:
    """
    Compose a child identifier.

    Args:
        parent_identifier: The parent's identifier ("" for depth-1 offices)
        suffix_value: Numeric suffix (0 <= value <= 10**width - 1)
        width: Number of suffix digits

    Returns:
        ``parent_identifier`` followed by the zero-padded suffix

    Raises:
        ValueError: If width < 1 or suffix_value is negative
        SuffixOverflowError: If suffix_value does not fit in width digits

    Example:
        >>> format_identifier("0501", 7, 2)
        '050107'
        >>> format_identifier("050101", 1, 4)
        '0501010001'
    """
    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")
    if suffix_value < 0:
        raise ValueError(f"suffix must be non-negative, got {suffix_value}")
    if suffix_value > 10**width - 1:
        raise SuffixOverflowError(parent_identifier, suffix_value, width)
    return f"{parent_identifier}{suffix_value:0{width}d}"


def next_identifier(max_identifier: str, width: int) -> str:
    """
    Return the identifier following ``max_identifier`` at the same level.

    Example:
        >>> next_identifier("0505", 2)
        '0506'
        >>> next_identifier("00", 2)
        '01'
    """
    head = max_identifier[:-width]
    return format_identifier(head, suffix_of(max_identifier, width) + 1, width)
