# mrz_correction.py

import dataclasses
import logging
from typing import Callable, Iterator, List, NamedTuple, Optional, Sequence, Tuple

from mrz_resolver import Resolution, resolve_rows
from mrz_settings import DEFAULT_SUBSTITUTIONS

logger = logging.getLogger(__name__)

Substitution = Tuple[str, str]


class RowTransform(NamedTuple):
    label: str
    apply: Callable[[str], str]


# ============================================================
#  OCR CONFUSION MAPS
# ============================================================
def apply_map(s: str, src: str, dst: str) -> str:
    return s.replace(src, dst)


def aggressive_map(s: str, substitutions: Sequence[Substitution] = DEFAULT_SUBSTITUTIONS) -> str:
    for src, dst in substitutions:
        s = s.replace(src, dst)
    return s


def _label(*subs: Substitution) -> str:
    return ",".join(f"{src}->{dst}" for src, dst in subs)


def candidate_transforms(
    substitutions: Sequence[Substitution] = DEFAULT_SUBSTITUTIONS,
    pair_neighborhood: int = 5,
) -> Iterator[RowTransform]:
    """
    Every single map, then pairs (i, j) with i < j <= i + pair_neighborhood
    applied in sequence, then all maps at once.
    """
    subs = list(substitutions)

    for sub in subs:
        yield RowTransform(_label(sub), lambda s, sub=sub: apply_map(s, *sub))

    for i, first in enumerate(subs):
        for second in subs[i + 1:i + 1 + pair_neighborhood]:
            yield RowTransform(
                _label(first, second),
                lambda s, a=first, b=second: apply_map(apply_map(s, *a), *b),
            )

    yield RowTransform("aggressive", lambda s: aggressive_map(s, subs))


# ============================================================
#  BOUNDED SEARCH
# ============================================================
def correct_rows(
    rows: Sequence[str],
    substitutions: Sequence[Substitution] = DEFAULT_SUBSTITUTIONS,
    pair_neighborhood: int = 5,
    **resolver_options,
) -> Optional[Resolution]:
    """
    Replay the resolver over substituted copies of `rows`, first success wins.
    The caller's rows are never modified.
    """
    if rows is None:
        raise ValueError("correct_rows needs a row list, got None")
    original: List[str] = list(rows)

    for transform in candidate_transforms(substitutions, pair_neighborhood):
        mapped = [transform.apply(r) for r in original]
        if mapped == original:
            continue
        result = resolve_rows(mapped, **resolver_options)
        if result is not None:
            logger.debug("OCR correction succeeded with %s", transform.label)
            return dataclasses.replace(result, corrected=True, substitution=transform.label)

    return None
