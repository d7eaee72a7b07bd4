"""
Suffix scanning over sibling identifiers.

Sibling identifiers share a parent prefix and a fixed-width zero-padded
numeric suffix, so among well-formed candidates the lexicographic maximum
equals the numeric maximum. Candidates that do not have the expected
shape (wrong total width, foreign prefix, non-digits) would break that
equivalence and are never compared.

Public API:
    - baseline_for: Build the "no siblings yet" identifier for a prefix
    - suffix_of: Extract the numeric suffix from an identifier
    - max_suffix: Find the highest well-formed sibling identifier
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable

from extid.core.ids.exceptions import WidthMismatchError

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"[0-9]+")


def baseline_for(prefix: str, width: int) -> str:
    """
    Return the identifier used when no sibling has been allocated yet.

    Example:
        >>> baseline_for("05", 2)
        '0500'
        >>> baseline_for("", 2)
        '00'
    """
    if width < 1:
        raise ValueError(f"width must be >= 1, got {width}")
    return prefix + "0" * width


def suffix_of(identifier: str, width: int) -> int:
    """
    Return the numeric value of the last ``width`` digits.

    Example:
        >>> suffix_of("050107", 2)
        7
    """
    tail = identifier[-width:]
    if len(tail) != width or not _DIGITS.fullmatch(tail):
        raise ValueError(f"'{identifier}' has no {width}-digit suffix")
    return int(tail)


def max_suffix(
    candidates: Iterable[str | None],
    width: int,
    baseline: str,
    *,
    strict: bool = False,
) -> str:
    """
    Find the greatest well-formed sibling identifier.

    A candidate qualifies when it is all ASCII digits, has the same length as
    ``baseline`` and starts with the baseline's prefix (``baseline`` minus
    its last ``width`` characters). Missing or blank candidates are
    unallocated siblings and are ignored silently.

    Args:
        candidates: Sibling identifiers (may contain None)
        width: Suffix width for this level
        baseline: Prefix followed by ``width`` zeros
        strict: Raise instead of ignoring malformed candidates

    Returns:
        The greatest qualifying candidate, or ``baseline`` if none qualify

    Raises:
        WidthMismatchError: If ``strict`` and a candidate is malformed

    Example:
        >>> max_suffix(["0501", "0502", "0505", None], 2, "0500")
        '0505'
        >>> max_suffix([], 4, "0501010000")
        '0501010000'
    """
    if width < 1 or len(baseline) < width:
        raise ValueError(f"baseline '{baseline}' is shorter than width {width}")

    prefix = baseline[:-width]
    best = baseline

    for candidate in candidates:
        if not candidate:
            continue
        if (
            len(candidate) != len(baseline)
            or not candidate.startswith(prefix)
            or not _DIGITS.fullmatch(candidate)
        ):
            if strict:
                raise WidthMismatchError(candidate, width, prefix)
            logger.warning(
                "Ignoring sibling identifier '%s': expected '%s' + %d digits",
                candidate,
                prefix,
                width,
            )
            continue
        if candidate > best:
            best = candidate

    logger.debug("Scanned siblings under '%s': max=%s", prefix, best)
    return best
