# mrz_extractor.py

import logging
from typing import Any, Dict, Iterable, List, Optional

from mrz_correction import correct_rows
from mrz_resolver import Resolution, resolve_rows
from mrz_rows import OcrFragment, assemble_rows, fragments_from_lines
from mrz_settings import Settings, get_settings
from mrz_stabilizer import NoMatch, Outcome, StabilizationTracker

logger = logging.getLogger(__name__)

MRZ_TYPE_LABELS = {
    "TD1": "TD1 (ID Card)",
    "TD2": "TD2 (Visa)",
    "TD3": "TD3 (Passport)",
}


def match_level(result: Optional[Resolution]) -> str:
    if result is None:
        return "no_match"
    if result.corrected:
        return "corrected"
    if result.relaxed:
        return "relaxed"
    return "strict"


# ============================================================
#  ONE RECOGNITION PASS
# ============================================================
def assemble(fragments: Iterable[OcrFragment], settings: Optional[Settings] = None) -> List[str]:
    settings = settings or get_settings()
    return assemble_rows(
        fragments,
        min_length=settings.min_fragment_length,
        filler_ratio=settings.filler_ratio,
        filler_floor=settings.filler_floor,
        merge_ratio=settings.row_merge_ratio,
        center_floor=settings.row_center_floor,
        center_gap_ratio=settings.row_center_gap_ratio,
    )


def resolve(rows: List[str], settings: Optional[Settings] = None) -> Optional[Resolution]:
    """Resolver on the raw rows, correction engine only if that fails."""
    settings = settings or get_settings()
    options = dict(
        length_tolerance_below=settings.length_tolerance_below,
        length_tolerance_above=settings.length_tolerance_above,
        fallback_min_length=settings.fallback_min_length,
    )
    result = resolve_rows(rows, **options)
    if result is not None:
        return result
    logger.debug("No decode on %d raw rows, trying OCR corrections", len(rows))
    return correct_rows(
        rows,
        substitutions=settings.substitutions,
        pair_neighborhood=settings.pair_neighborhood,
        **options,
    )


def extract_mrz_from_fragments(
    fragments: Iterable[OcrFragment], settings: Optional[Settings] = None
) -> Optional[Resolution]:
    rows = assemble(fragments, settings)
    if not rows:
        return None
    return resolve(rows, settings)


# ============================================================
#  STREAMING SCANNER
# ============================================================
class MrzScanner:
    """
    One scanning session: every call to `process` is one recognition pass.
    Not thread-safe; feed frames one at a time.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.tracker = StabilizationTracker(self.settings.required_stable_hits)

    @property
    def scanning(self) -> bool:
        return self.tracker.scanning

    def process(self, fragments: Iterable[OcrFragment]) -> Outcome:
        if not self.tracker.scanning:
            return self.tracker.outcome()
        fragments = list(fragments)
        if not fragments:
            return NoMatch()
        result = extract_mrz_from_fragments(fragments, self.settings)
        return self.tracker.feed(result)

    def outcome(self) -> Outcome:
        return self.tracker.outcome()

    def reset(self) -> None:
        self.tracker.reset()


# ============================================================
#  RAW TEXT HELPERS
# ============================================================
def extract_mrz_from_ocr_text(text: str, settings: Optional[Settings] = None) -> List[str]:
    """
    Takes raw OCR text and returns candidate MRZ rows in reading order.
    """
    fragments = fragments_from_lines(ln for ln in text.splitlines() if ln.strip())
    rows = assemble(fragments, settings)
    if not rows:
        raise ValueError("Could not detect MRZ-like lines in OCR output.")
    return rows


def parse_mrz(mrz_lines: List[str], settings: Optional[Settings] = None) -> Dict[str, Any]:
    if not mrz_lines or len(mrz_lines) < 2:
        raise ValueError("Unsupported MRZ layout.")

    settings = settings or get_settings()
    result = resolve(list(mrz_lines), settings)
    if result is None:
        raise ValueError("No MRZ format matched the given lines.")

    return {
        "mrz_type": MRZ_TYPE_LABELS[result.format.name],
        "fields": result.mrz.to_dict(settings.century_pivot),
        "match": match_level(result),
        "relaxed": result.relaxed,
        "corrected": result.corrected,
        "swapped": result.swapped,
        "substitution": result.substitution,
    }
