"""
Core module - Foundation components for spedtax.

Provides:
- ExtractorConfig: JSON-backed configuration with defaults
- parse_amount: SPED monetary field normalization
- decode_content / read_file: file acquisition
- Exception hierarchy rooted at SpedError
"""

from spedtax.core.config import ExtractorConfig, DEFAULT_CONFIG
from spedtax.core.money import parse_amount, round_money, percentage
from spedtax.core.file_reader import decode_content, read_file
from spedtax.core.exceptions import (
    SpedError,
    LayoutError,
    UnsupportedLayoutError,
    UnknownVariantError,
    FileReadError,
    TransitionScheduleError,
    ConfigError,
)

__all__ = [
    "ExtractorConfig",
    "DEFAULT_CONFIG",
    "parse_amount",
    "round_money",
    "percentage",
    "decode_content",
    "read_file",
    "SpedError",
    "LayoutError",
    "UnsupportedLayoutError",
    "UnknownVariantError",
    "FileReadError",
    "TransitionScheduleError",
    "ConfigError",
]
