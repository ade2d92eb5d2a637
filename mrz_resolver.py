# mrz_resolver.py

import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

from mrz_formats import Format, ParsedMrz
from mrz_rows import pad_to_length

logger = logging.getLogger(__name__)

PAIR_FORMATS = (Format.TD3, Format.TD2)


@dataclass(frozen=True)
class Resolution:
    mrz: ParsedMrz
    format: Format
    relaxed: bool = False
    corrected: bool = False
    swapped: bool = False
    substitution: Optional[str] = None


def is_length_approx(s: str, target: int, below: int = 10, above: int = 5) -> bool:
    return target - below <= len(s) <= target + above


def _attempts(fmt: Format, rows: Sequence[str], relaxed_ok: bool) -> Iterator[Tuple[List[str], bool, bool]]:
    """(padded rows, relaxed, swapped) in the order they are tried."""
    padded = [pad_to_length(r, fmt.width) for r in rows]
    swapped = list(reversed(padded))
    relaxed_ok = relaxed_ok and fmt.relaxed_allowed
    yield padded, False, False
    if relaxed_ok:
        yield padded, True, False
    yield swapped, False, True
    if relaxed_ok:
        yield swapped, True, True


def try_format(fmt: Format, rows: Sequence[str], relaxed_ok: bool = True) -> Optional[Resolution]:
    """Strict, relaxed, then the same with row order reversed."""
    for padded, relaxed, swapped in _attempts(fmt, rows, relaxed_ok):
        mrz = fmt.decode(padded, relaxed=relaxed)
        if mrz is not None:
            logger.debug("Decoded %s (relaxed=%s, swapped=%s)", fmt.name, relaxed, swapped)
            return Resolution(mrz=mrz, format=fmt, relaxed=relaxed, swapped=swapped)
    return None


def _pair_formats(
    a: str, b: str, below: int, above: int, fallback_min_length: int
) -> List[Tuple[Format, bool]]:
    """(format, relaxed allowed) candidates for a row pair, nearest width first."""
    longest = max(len(a), len(b))
    fallback = len(a) >= fallback_min_length and len(b) >= fallback_min_length
    formats = [
        fmt for fmt in PAIR_FORMATS
        if fallback
        or is_length_approx(a, fmt.width, below, above)
        or is_length_approx(b, fmt.width, below, above)
    ]
    # relaxed TD3 only checks offsets TD2 shares, so rows that fit TD2 never get it
    fits_td2 = longest <= Format.TD2.width + above
    ordered = sorted(formats, key=lambda fmt: abs(longest - fmt.width))
    return [(fmt, not (fits_td2 and Format.TD2 in formats)) for fmt in ordered]


def resolve_rows(
    rows: Sequence[str],
    length_tolerance_below: int = 10,
    length_tolerance_above: int = 5,
    fallback_min_length: int = 20,
) -> Optional[Resolution]:
    """
    Try every consecutive triple as TD1, then every consecutive pair as
    TD3/TD2. First full decode wins; nothing partial is ever returned.
    """
    if rows is None:
        raise ValueError("resolve_rows needs a row list, got None")
    rows = list(rows)
    below, above = length_tolerance_below, length_tolerance_above

    width = Format.TD1.width
    for i in range(len(rows) - 2):
        triple = rows[i:i + 3]
        if all(is_length_approx(r, width, below, above) for r in triple):
            result = try_format(Format.TD1, triple)
            if result is not None:
                return result

    for i in range(len(rows) - 1):
        a, b = rows[i], rows[i + 1]
        for fmt, relaxed_ok in _pair_formats(a, b, below, above, fallback_min_length):
            result = try_format(fmt, [a, b], relaxed_ok)
            if result is not None:
                return result

    return None
