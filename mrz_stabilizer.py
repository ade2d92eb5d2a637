# mrz_stabilizer.py

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple, Union

from mrz_formats import ParsedMrz
from mrz_resolver import Resolution

logger = logging.getLogger(__name__)

SCAN_PROMPT = "Place the passport MRZ inside the frame"


# ============================================================
#  OUTCOMES
# ============================================================
@dataclass(frozen=True)
class NoMatch:
    status = "no_match"

    @property
    def message(self) -> str:
        return SCAN_PROMPT

    def to_dict(self, century_pivot: int = 30) -> Dict[str, Any]:
        return {"status": self.status, "message": self.message}


@dataclass(frozen=True)
class Accumulating:
    hits: int
    required: int
    status = "accumulating"

    @property
    def message(self) -> str:
        return f"Stabilizing MRZ... ({self.hits}/{self.required})"

    def to_dict(self, century_pivot: int = 30) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "hits": self.hits,
            "required": self.required,
        }


@dataclass(frozen=True)
class Accepted:
    mrz: ParsedMrz
    corrected: bool = False
    relaxed: bool = False
    status = "accepted"

    @property
    def message(self) -> str:
        if self.corrected:
            return "Scan succeeded (OCR corrected)"
        return "Scan succeeded"

    def to_dict(self, century_pivot: int = 30) -> Dict[str, Any]:
        return {
            "status": self.status,
            "message": self.message,
            "corrected": self.corrected,
            "relaxed": self.relaxed,
            "mrz": self.mrz.to_dict(century_pivot),
        }


Outcome = Union[NoMatch, Accumulating, Accepted]


# ============================================================
#  STATE MACHINE
# ============================================================
@dataclass(frozen=True)
class StabilizationState:
    candidate: Optional[ParsedMrz] = None
    hits: int = 0
    scanning: bool = True
    corrected: bool = False
    relaxed: bool = False

    @property
    def accepted(self) -> bool:
        return not self.scanning and self.candidate is not None

    @property
    def phase(self) -> str:
        if self.accepted:
            return "accepted"
        if self.candidate is not None:
            return "accumulating"
        return "scanning"


INITIAL_STATE = StabilizationState()


def reset() -> StabilizationState:
    return INITIAL_STATE


def current_outcome(state: StabilizationState, required_hits: int = 2) -> Outcome:
    if state.accepted:
        return Accepted(state.candidate, corrected=state.corrected, relaxed=state.relaxed)
    if state.candidate is not None:
        return Accumulating(state.hits, required_hits)
    return NoMatch()


def advance(
    state: StabilizationState,
    result: Optional[Resolution],
    required_hits: int = 2,
) -> Tuple[StabilizationState, Outcome]:
    """
    Feed one recognition cycle. A matching candidate bumps the hit count, a
    different one replaces it at 1, no result leaves the state alone.
    """
    if required_hits < 1:
        raise ValueError("required_hits must be at least 1")
    if state.accepted:
        return state, current_outcome(state, required_hits)
    if result is None:
        return state, NoMatch()

    if state.candidate is not None and state.candidate.same_identity(result.mrz):
        hits = state.hits + 1
        candidate = state.candidate
    else:
        hits = 1
        candidate = result.mrz

    if hits >= required_hits:
        new_state = StabilizationState(
            candidate=candidate,
            hits=hits,
            scanning=False,
            corrected=result.corrected,
            relaxed=result.relaxed,
        )
        logger.info(
            "MRZ accepted after %d hits (format=%s, corrected=%s)",
            hits, candidate.mrz_format, result.corrected,
        )
        return new_state, current_outcome(new_state, required_hits)

    new_state = StabilizationState(
        candidate=candidate, hits=hits, corrected=result.corrected, relaxed=result.relaxed
    )
    return new_state, Accumulating(hits, required_hits)


class StabilizationTracker:
    """Holds one session's state; callers process one frame at a time."""

    def __init__(self, required_hits: int = 2):
        if required_hits < 1:
            raise ValueError("required_hits must be at least 1")
        self.required_hits = required_hits
        self.state = INITIAL_STATE

    @property
    def scanning(self) -> bool:
        return self.state.scanning

    def feed(self, result: Optional[Resolution]) -> Outcome:
        self.state, outcome = advance(self.state, result, self.required_hits)
        return outcome

    def outcome(self) -> Outcome:
        return current_outcome(self.state, self.required_hits)

    def reset(self) -> None:
        logger.info("Scanning reset")
        self.state = reset()


# ============================================================
#  FRAME GATE
# ============================================================
class FrameGate:
    """
    Drops frames while one is being recognized or before `interval_ms`
    has passed since the last admitted frame.
    """

    def __init__(self, interval_ms: int = 120, clock: Callable[[], float] = time.monotonic):
        self.interval = interval_ms / 1000.0
        self._clock = clock
        self._last: Optional[float] = None
        self._in_flight = threading.Lock()

    def try_enter(self) -> bool:
        now = self._clock()
        if self._last is not None and now - self._last < self.interval:
            return False
        if not self._in_flight.acquire(blocking=False):
            return False
        self._last = now
        return True

    def leave(self) -> None:
        self._in_flight.release()

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()
