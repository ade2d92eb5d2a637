"""Tuning knobs for MRZ row assembly, resolution, correction and stabilization."""

from functools import lru_cache
from typing import List, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUBSTITUTIONS: List[Tuple[str, str]] = [
    ("O", "0"), ("Q", "0"), ("D", "0"),
    ("I", "1"), ("L", "1"), ("T", "7"), ("Z", "2"), ("S", "5"), ("B", "8"), ("G", "6"),
]


class Settings(BaseSettings):
    """Settings loaded from MRZ_* environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="MRZ_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Row assembler
    min_fragment_length: int = 12
    filler_ratio: float = 0.2
    filler_floor: int = 3
    row_merge_ratio: float = 0.5
    # used when fragments carry centers but no heights
    row_center_floor: float = 4.0
    row_center_gap_ratio: float = 0.25

    # Candidate resolver
    length_tolerance_below: int = 10
    length_tolerance_above: int = 5
    fallback_min_length: int = 20

    # Correction engine
    substitutions: List[Tuple[str, str]] = DEFAULT_SUBSTITUTIONS
    pair_neighborhood: int = 5

    # Stabilization
    required_stable_hits: int = 2
    frame_interval_ms: int = 120

    # API scan sessions untouched this long are dropped when a new one is created
    session_idle_ttl_s: float = 300.0

    # Output
    century_pivot: int = 30

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
