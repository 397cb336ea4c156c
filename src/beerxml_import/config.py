"""Pipeline configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass


def _safe_float(value: str | None, default: float | None) -> float | None:
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError:
        return default


@dataclass(frozen=True)
class PipelineConfig:
    default_batch_size: float = 19.0
    default_efficiency: float = 75.0
    default_boil_time: float = 60.0
    default_mash_temperature_c: float = 67.0
    default_mash_temperature_f: float = 152.0
    match_min_confidence: float | None = None
    high_confidence_threshold: float = 0.8
    max_file_bytes: int = 10 * 1024 * 1024
    api_base_url: str | None = None
    api_token: str | None = None
    api_timeout_sec: float = 10.0

    @classmethod
    def from_env(cls) -> "PipelineConfig":
        defaults = cls()
        return cls(
            default_batch_size=_safe_float(
                os.getenv("BEERXML_DEFAULT_BATCH_SIZE"), defaults.default_batch_size
            ),
            default_efficiency=_safe_float(
                os.getenv("BEERXML_DEFAULT_EFFICIENCY"), defaults.default_efficiency
            ),
            default_boil_time=_safe_float(
                os.getenv("BEERXML_DEFAULT_BOIL_TIME"), defaults.default_boil_time
            ),
            default_mash_temperature_c=_safe_float(
                os.getenv("BEERXML_DEFAULT_MASH_TEMP_C"), defaults.default_mash_temperature_c
            ),
            default_mash_temperature_f=_safe_float(
                os.getenv("BEERXML_DEFAULT_MASH_TEMP_F"), defaults.default_mash_temperature_f
            ),
            match_min_confidence=_safe_float(os.getenv("BEERXML_MATCH_MIN_CONFIDENCE"), None),
            high_confidence_threshold=_safe_float(
                os.getenv("BEERXML_HIGH_CONFIDENCE"), defaults.high_confidence_threshold
            ),
            max_file_bytes=int(
                _safe_float(os.getenv("BEERXML_MAX_FILE_BYTES"), defaults.max_file_bytes)
            ),
            api_base_url=os.getenv("BEERXML_API_URL") or None,
            api_token=os.getenv("BEERXML_API_TOKEN") or None,
            api_timeout_sec=_safe_float(
                os.getenv("BEERXML_API_TIMEOUT_SEC"), defaults.api_timeout_sec
            ),
        )
