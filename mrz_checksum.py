# mrz_checksum.py

from typing import Optional

FILLER = "<"
CHECK_WEIGHTS = (7, 3, 1)


# ============================================================
#  ICAO CHECK DIGIT HELPERS
# ============================================================
def mrz_char_value(c: str) -> int:
    if "0" <= c <= "9":
        return ord(c) - ord("0")
    if "A" <= c <= "Z":
        return ord(c) - ord("A") + 10
    # filler and anything unrecognized
    return 0


def mrz_check_digit(field: str) -> str:
    total = 0
    for i, ch in enumerate(field):
        total += mrz_char_value(ch) * CHECK_WEIGHTS[i % 3]
    return str(total % 10)


def is_check_digit_valid(field: str, check: Optional[str]) -> bool:
    """
    A check character is valid only when it is an ASCII digit equal
    to the computed 7-3-1 check digit of `field`.
    """
    if not check or len(check) != 1 or not ("0" <= check <= "9"):
        return False
    return mrz_check_digit(field) == check


def is_plausible_date(d: str) -> bool:
    """
    YYMMDD with month 1..12 and day 1..31. Day counts per month are not
    enforced; printed-but-impossible dates still occur on real documents.
    """
    if len(d) != 6 or not all("0" <= ch <= "9" for ch in d):
        return False
    month = int(d[2:4])
    day = int(d[4:6])
    return 1 <= month <= 12 and 1 <= day <= 31


def is_filler(field: str) -> bool:
    return all(ch == FILLER for ch in field)
