# mrz_rows.py

import re
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Sequence

from mrz_checksum import FILLER


# ============================================================
#  LINE NORMALIZATION
# ============================================================
def normalize_mrz_line(line: str) -> str:
    """Uppercase and keep only the MRZ alphabet (A-Z, 0-9, <)."""
    line = re.sub(r"\s+", "", line).upper()
    return re.sub(r"[^A-Z0-9<]", "", line)


def pad_to_length(s: str, length: int) -> str:
    """Truncate or right-pad with fillers to exactly `length` characters."""
    if length < 0:
        raise ValueError("length must be non-negative")
    s = (s or "").upper()
    if len(s) >= length:
        return s[:length]
    return s + FILLER * (length - len(s))


def looks_like_mrz_line(s: str, filler_ratio: float = 0.2, filler_floor: int = 3) -> bool:
    """
    MRZ rows carry many fillers; ordinary printed text almost never does.
    Needs at least `filler_floor` fillers and `filler_ratio` of the length.
    """
    if not s:
        return False
    fillers = s.count(FILLER)
    return fillers >= max(filler_floor, int(len(s) * filler_ratio))


# ============================================================
#  OCR FRAGMENTS
# ============================================================
@dataclass(frozen=True)
class OcrFragment:
    raw: str
    center_y: float = 0.0
    left: float = 0.0
    height: float = 0.0
    norm: str = field(init=False)

    def __post_init__(self):
        object.__setattr__(self, "norm", normalize_mrz_line(self.raw or ""))

    @property
    def has_position(self) -> bool:
        return self.center_y != 0 or self.left != 0 or self.height != 0


def fragments_from_lines(lines: Iterable[str]) -> List[OcrFragment]:
    """Fragments without geometry, in arrival order."""
    return [OcrFragment(raw=ln) for ln in lines]


# ============================================================
#  ROW ASSEMBLY
# ============================================================
def filter_fragments(
    fragments: Iterable[OcrFragment],
    min_length: int = 12,
    filler_ratio: float = 0.2,
    filler_floor: int = 3,
) -> List[OcrFragment]:
    kept = []
    for frag in fragments:
        if not frag.norm:
            continue
        if len(frag.norm) >= min_length or looks_like_mrz_line(frag.norm, filler_ratio, filler_floor):
            kept.append(frag)
    return kept


def _join_left_to_right(frags: Sequence[OcrFragment]) -> str:
    return "".join(f.norm for f in sorted(frags, key=lambda f: f.left))


def _group_lines(
    frags: List[OcrFragment],
    tolerance: Callable[[List[OcrFragment], OcrFragment], float],
) -> List[List[OcrFragment]]:
    """Walk fragments top to bottom; a fragment close to the running line center joins it."""
    lines: List[List[OcrFragment]] = []
    center = 0.0
    for frag in sorted(frags, key=lambda f: f.center_y):
        if lines:
            current = lines[-1]
            if abs(frag.center_y - center) <= tolerance(current, frag):
                current.append(frag)
                center = sum(f.center_y for f in current) / len(current)
                continue
        lines.append([frag])
        center = frag.center_y
    return lines


def center_tolerance(frags: Sequence[OcrFragment], floor: float = 4.0, gap_ratio: float = 0.25) -> float:
    """
    Line tolerance when no heights are known: a fraction of the largest
    vertical gap between neighbouring centers, never below `floor`.
    """
    centers = sorted(f.center_y for f in frags)
    largest_gap = max((b - a for a, b in zip(centers, centers[1:])), default=0.0)
    return max(floor, gap_ratio * largest_gap)


def assemble_rows(
    fragments: Iterable[OcrFragment],
    min_length: int = 12,
    filler_ratio: float = 0.2,
    filler_floor: int = 3,
    merge_ratio: float = 0.5,
    center_floor: float = 4.0,
    center_gap_ratio: float = 0.25,
) -> List[str]:
    """
    Turn one recognition pass worth of fragments into ordered row strings.

    Fragments sharing a physical line are merged left to right and lines
    come out top to bottom. With heights, "same line" means within
    `merge_ratio` of the taller fragment's height; with centers only, it
    means within `center_tolerance`. Fragments without any position are
    appended afterwards as rows of their own, in arrival order.
    """
    candidates = filter_fragments(fragments, min_length, filler_ratio, filler_floor)
    placed = [f for f in candidates if f.has_position]
    unplaced = [f for f in candidates if not f.has_position]

    with_heights = any(f.height > 0 for f in placed)
    fixed = None if with_heights else center_tolerance(placed, center_floor, center_gap_ratio)

    def tolerance(line, frag):
        if fixed is not None:
            return fixed
        return merge_ratio * max(max(f.height for f in line), frag.height)

    rows = [_join_left_to_right(line) for line in _group_lines(placed, tolerance)]
    return rows + [f.norm for f in unplaced]
