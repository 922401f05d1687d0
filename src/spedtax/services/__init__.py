"""Services - multi-file orchestration on top of the parsers."""

from spedtax.services.import_session import (
    ImportSession,
    ImportResult,
    FileResult,
    FileStatus,
)

__all__ = [
    "ImportSession",
    "ImportResult",
    "FileResult",
    "FileStatus",
]
