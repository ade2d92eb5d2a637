# mrz_formats.py

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, NamedTuple, Optional, Sequence, Tuple

from mrz_checksum import FILLER, is_check_digit_valid, is_filler, is_plausible_date

logger = logging.getLogger(__name__)


class Span(NamedTuple):
    """Half-open [start, end) slice of one MRZ row."""

    row: int
    start: int
    end: int

    def take(self, lines: Sequence[str]) -> str:
        return lines[self.row][self.start:self.end]


@dataclass(frozen=True, eq=False)
class FormatLayout:
    rows: int
    width: int
    fields: Dict[str, Span]
    # named composite formulas; any one validating satisfies the composite check
    composites: Dict[str, Tuple[Span, ...]] = field(default_factory=dict)
    relaxed_allowed: bool = False


TD3_LAYOUT = FormatLayout(
    rows=2,
    width=44,
    fields={
        "document_type": Span(0, 0, 2),
        "issuing_country": Span(0, 2, 5),
        "names": Span(0, 5, 44),
        "document_number": Span(1, 0, 9),
        "document_number_check": Span(1, 9, 10),
        "nationality": Span(1, 10, 13),
        "date_of_birth": Span(1, 13, 19),
        "date_of_birth_check": Span(1, 19, 20),
        "sex": Span(1, 20, 21),
        "expiry_date": Span(1, 21, 27),
        "expiry_date_check": Span(1, 27, 28),
        "optional": Span(1, 28, 42),
        "optional_check": Span(1, 42, 43),
        "composite_check": Span(1, 43, 44),
    },
    composites={
        "icao": (Span(1, 0, 10), Span(1, 13, 20), Span(1, 21, 43)),
    },
    relaxed_allowed=True,
)

TD2_LAYOUT = FormatLayout(
    rows=2,
    width=36,
    fields={
        "document_type": Span(0, 0, 2),
        "issuing_country": Span(0, 2, 5),
        "names": Span(0, 5, 36),
        "document_number": Span(1, 0, 9),
        "document_number_check": Span(1, 9, 10),
        "nationality": Span(1, 10, 13),
        "date_of_birth": Span(1, 13, 19),
        "date_of_birth_check": Span(1, 19, 20),
        "sex": Span(1, 20, 21),
        "expiry_date": Span(1, 21, 27),
        "expiry_date_check": Span(1, 27, 28),
        "optional": Span(1, 28, 35),
        "optional_check": Span(1, 35, 36),
    },
)

TD1_LAYOUT = FormatLayout(
    rows=3,
    width=30,
    fields={
        "document_type": Span(0, 0, 2),
        "issuing_country": Span(0, 2, 5),
        "document_number": Span(0, 5, 14),
        "document_number_check": Span(0, 14, 15),
        "optional": Span(0, 15, 30),
        "date_of_birth": Span(1, 0, 6),
        "date_of_birth_check": Span(1, 6, 7),
        "sex": Span(1, 7, 8),
        "expiry_date": Span(1, 8, 14),
        "expiry_date_check": Span(1, 14, 15),
        "nationality": Span(1, 15, 18),
        "optional_2": Span(1, 18, 29),
        "composite_check": Span(1, 29, 30),
        "names": Span(2, 0, 30),
    },
    composites={
        # Doc 9303 part 5: document number block, dob, expiry and both optional fields
        "icao": (Span(0, 5, 30), Span(1, 0, 7), Span(1, 8, 15), Span(1, 18, 29)),
        # seen on cards that leave the optional fields out of the composite
        "doc_dates": (Span(0, 5, 15), Span(1, 0, 7), Span(1, 8, 15)),
    },
)


class Format(Enum):
    TD1 = TD1_LAYOUT
    TD2 = TD2_LAYOUT
    TD3 = TD3_LAYOUT

    @property
    def rows(self) -> int:
        return self.value.rows

    @property
    def width(self) -> int:
        return self.value.width

    @property
    def relaxed_allowed(self) -> bool:
        return self.value.relaxed_allowed

    def decode(self, lines: Sequence[str], relaxed: bool = False) -> Optional["ParsedMrz"]:
        return decode(self, lines, relaxed=relaxed)


# ============================================================
#  DECODED RECORD
# ============================================================
@dataclass(frozen=True)
class ParsedMrz:
    mrz_format: str
    document_type: Optional[str]
    issuing_country: Optional[str]
    name: Optional[str]
    document_number: Optional[str]
    nationality: Optional[str]
    date_of_birth: Optional[str]
    gender: Optional[str]
    expiry_date: Optional[str]
    personal_number: Optional[str]
    surname: Optional[str] = None
    given_names: Optional[str] = None
    composite_formula: Optional[str] = None

    def identity(self) -> Tuple[Optional[str], Optional[str], Optional[str]]:
        return (self.document_number, self.name, self.expiry_date)

    def same_identity(self, other: Optional["ParsedMrz"]) -> bool:
        """
        Stabilization equality: document number, name and expiry date must
        all match. Two missing values compare equal, one missing value does not.
        """
        if other is None:
            return False
        return all(_safe_equals(a, b) for a, b in zip(self.identity(), other.identity()))

    def to_dict(self, century_pivot: int = 30) -> Dict[str, Any]:
        return {
            "mrz_format": self.mrz_format,
            "document_type": self.document_type,
            "issuing_country": self.issuing_country,
            "name": self.name,
            "surname": self.surname,
            "given_names": self.given_names,
            "document_number": self.document_number,
            "nationality": self.nationality,
            "date_of_birth": self.date_of_birth,
            "date_of_birth_iso": mrz_date_to_iso(self.date_of_birth, century_pivot),
            "gender": self.gender,
            "expiry_date": self.expiry_date,
            "expiry_date_iso": mrz_date_to_iso(self.expiry_date, century_pivot),
            "personal_number": self.personal_number,
            "composite_formula": self.composite_formula,
        }


def _safe_equals(a: Optional[str], b: Optional[str]) -> bool:
    if a is None and b is None:
        return True
    if a is None or b is None:
        return False
    return a == b


# ============================================================
#  FIELD HELPERS
# ============================================================
def decode_name(field_text: str) -> Tuple[str, str, str]:
    """
    Split on the first `<<` into surname and given names, turn remaining
    fillers into spaces. Returns (surname, given_names, full_name).
    """
    parts = field_text.split("<<", 1)
    surname = parts[0].replace(FILLER, " ").strip()
    given_names = parts[1].replace(FILLER, " ").strip() if len(parts) > 1 else ""
    full_name = (surname + " " + given_names).strip()
    return surname, given_names, full_name


def mrz_date_to_iso(d: Optional[str], century_pivot: int = 30) -> Optional[str]:
    if d is None or not re.match(r"^\d{6}$", d):
        return None
    yy = int(d[:2])
    mm = d[2:4]
    dd = d[4:6]
    year = 2000 + yy if yy < century_pivot else 1900 + yy
    return f"{year}-{mm}-{dd}"


def _strip_filler(s: str) -> str:
    return s.replace(FILLER, "")


def _optional_ok(optional: str, check: str) -> bool:
    # an empty optional field needs no valid check of its own
    return is_filler(optional) or is_check_digit_valid(optional, check)


def _matching_composite(layout: FormatLayout, lines: Sequence[str]) -> Optional[str]:
    check = layout.fields["composite_check"].take(lines)
    for formula, spans in layout.composites.items():
        data = "".join(span.take(lines) for span in spans)
        if is_check_digit_valid(data, check):
            return formula
    return None


# ============================================================
#  GENERIC DECODER
# ============================================================
def decode(fmt: Format, lines: Sequence[str], relaxed: bool = False) -> Optional[ParsedMrz]:
    """
    Decode fixed-width rows as `fmt`. Returns None on any malformed,
    too-short or checksum-failing input.

    Strict mode runs every check the format defines. Relaxed mode (only
    where the layout allows it) keeps the document number, birth and
    expiry checks and drops the optional-number and composite checks.
    """
    if lines is None:
        raise ValueError("decoder needs a row set, got None")
    layout = fmt.value
    if len(lines) != layout.rows:
        raise ValueError(f"{fmt.name} expects {layout.rows} rows, got {len(lines)}")
    if relaxed and not layout.relaxed_allowed:
        return None

    rows = [ln.upper() for ln in lines]
    if any(len(ln) < layout.width for ln in rows):
        return None

    f = {name: span.take(rows) for name, span in layout.fields.items()}

    if not is_check_digit_valid(f["document_number"], f["document_number_check"]):
        return None
    if not (is_plausible_date(f["date_of_birth"])
            and is_check_digit_valid(f["date_of_birth"], f["date_of_birth_check"])):
        return None
    if not (is_plausible_date(f["expiry_date"])
            and is_check_digit_valid(f["expiry_date"], f["expiry_date_check"])):
        return None

    composite_formula = None
    if not relaxed:
        if "optional_check" in f and not _optional_ok(f["optional"], f["optional_check"]):
            return None
        if layout.composites:
            composite_formula = _matching_composite(layout, rows)
            if composite_formula is None:
                return None
            if len(layout.composites) > 1:
                logger.debug("%s composite matched formula %s", fmt.name, composite_formula)

    surname, given_names, full_name = decode_name(f["names"])
    personal = f["optional"] + f.get("optional_2", "")

    return ParsedMrz(
        mrz_format=fmt.name,
        document_type=_strip_filler(f["document_type"]),
        issuing_country=f["issuing_country"],
        name=full_name,
        document_number=_strip_filler(f["document_number"]),
        nationality=f["nationality"],
        date_of_birth=f["date_of_birth"],
        gender=f["sex"],
        expiry_date=f["expiry_date"],
        personal_number=_strip_filler(personal),
        surname=surname,
        given_names=given_names,
        composite_formula=composite_formula,
    )


# ============================================================
#  PER-FORMAT ENTRY POINTS
# ============================================================
def parse_td3(lines: List[str], relaxed: bool = False) -> Optional[ParsedMrz]:
    return decode(Format.TD3, lines, relaxed=relaxed)


def parse_td2(lines: List[str]) -> Optional[ParsedMrz]:
    return decode(Format.TD2, lines)


def parse_td1(lines: List[str]) -> Optional[ParsedMrz]:
    return decode(Format.TD1, lines)
