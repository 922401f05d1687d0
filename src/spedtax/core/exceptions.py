"""
Custom exceptions for the spedtax core.

All spedtax-specific exceptions inherit from SpedError for easy catching.

Per-line and per-field defects in SPED files are never raised: they are
counted or zeroed by the parser and extractor. The exceptions below signal
programming or configuration mistakes (bad layout tables, unknown variant
keys, out-of-range schedule values) and unreadable sources.
"""


class SpedError(Exception):
    """Base exception for all spedtax errors."""

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        self.code = code


class LayoutError(SpedError):
    """Invalid layout definition in the layout registry."""

    def __init__(self, message: str, code: str = "LAYOUT_ERROR"):
        super().__init__(message, code)


class UnsupportedLayoutError(SpedError):
    """Raised when no layout exists for a (record type, variant) pair."""

    def __init__(self, record_type: str, variant: str, code: str = "UNSUPPORTED_LAYOUT"):
        super().__init__(f"Unsupported layout: record {record_type} in {variant}", code)
        self.record_type = record_type
        self.variant = variant


class UnknownVariantError(SpedError):
    """Raised when a value cannot be mapped to a FileVariant."""

    def __init__(self, value: str, code: str = "UNKNOWN_VARIANT"):
        super().__init__(f"Unknown SPED file variant: {value!r}", code)
        self.value = value


class FileReadError(SpedError):
    """Raised when a bookkeeping file cannot be read or decoded."""

    def __init__(self, message: str, file_path: str = None, code: str = "FILE_READ_ERROR"):
        super().__init__(message, code)
        self.file_path = file_path


class TransitionScheduleError(SpedError):
    """Raised when the injected transition schedule returns an invalid share."""

    def __init__(self, year: int, value, code: str = "TRANSITION_SCHEDULE_ERROR"):
        super().__init__(
            f"Transition schedule returned {value!r} for {year}, expected a value in [0, 1]",
            code
        )
        self.year = year
        self.value = value


class ConfigError(SpedError):
    """Invalid extractor configuration."""

    def __init__(self, message: str, key: str = None, code: str = "CONFIG_ERROR"):
        super().__init__(message, code)
        self.key = key
