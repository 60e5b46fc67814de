"""Compact string encoding for sets of line numbers.

``[8, 9, 10, 11, 15, 16, 17, 18]`` is stored as ``"8-11,15-18"``.  Decoding
is lenient: malformed tokens are dropped instead of failing the whole load.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, List

logger = logging.getLogger(__name__)


def encode_line_ranges(lines: Iterable[int]) -> str:
    """Collapse *lines* into comma-joined ``start-end`` runs."""
    ordered = sorted(set(lines))
    if not ordered:
        return ""

    parts: List[str] = []
    start = prev = ordered[0]
    for line in ordered[1:]:
        if line == prev + 1:
            prev = line
            continue
        parts.append(_render_run(start, prev))
        start = prev = line
    parts.append(_render_run(start, prev))
    return ",".join(parts)


def _render_run(start: int, end: int) -> str:
    return str(start) if start == end else f"{start}-{end}"


def decode_line_ranges(text: str) -> List[int]:
    """Expand a compact range string back into explicit line numbers."""
    if not text:
        return []

    lines: List[int] = []
    for token in text.split(","):
        token = token.strip()
        if not token:
            continue
        if "-" in token:
            low, _, high = token.partition("-")
            try:
                start, end = int(low), int(high)
            except ValueError:
                logger.debug("Dropping malformed line range %r", token)
                continue
            lines.extend(range(start, end + 1))
        else:
            try:
                lines.append(int(token))
            except ValueError:
                logger.debug("Dropping non-numeric line token %r", token)
    return lines


def normalize_line_numbers(value: Any) -> List[int]:
    """Accept either the compact string or the legacy integer array."""
    if value is None:
        return []
    if isinstance(value, str):
        return decode_line_ranges(value)
    if not isinstance(value, (list, tuple)):
        logger.debug("Dropping unreadable line numbers %r", value)
        return []

    lines: List[int] = []
    for item in value:
        if isinstance(item, bool):
            continue
        if isinstance(item, int):
            lines.append(item)
        elif isinstance(item, str) and item.strip().isdigit():
            lines.append(int(item))
    return lines
