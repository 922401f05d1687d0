"""
Import Session for spedtax.

Parses one file per bookkeeping variant concurrently. Every file is parsed
independently: a failure in one file never affects the others, and the
parser keeps no state shared between threads.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

from spedtax.core.config import ExtractorConfig
from spedtax.parsers.detector import VariantDetector
from spedtax.parsers.models import FileVariant, ParseResult
from spedtax.parsers.record_parser import SpedParser

logger = logging.getLogger(__name__)


class FileStatus(Enum):
    """Status of individual file processing."""

    PENDING = "pending"
    SUCCESS = "success"
    PARTIAL = "partial"  # parsed, but some lines were rejected
    FAILED = "failed"


@dataclass
class FileResult:
    """Result of processing a single file."""

    variant: FileVariant
    file_path: Path
    status: FileStatus = FileStatus.PENDING
    records_processed: int = 0
    lines_with_errors: int = 0
    errors: List[str] = field(default_factory=list)
    processing_time_ms: int = 0


@dataclass
class ImportResult:
    """Result of an import session run."""

    parse_results: Dict[FileVariant, ParseResult] = field(default_factory=dict)
    file_results: List[FileResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when every file produced records."""
        return bool(self.file_results) and not self.failed_files

    @property
    def failed_files(self) -> List[FileResult]:
        return [r for r in self.file_results if r.status == FileStatus.FAILED]

    @property
    def total_records(self) -> int:
        return sum(r.records_processed for r in self.file_results)

    def successful(self) -> Dict[FileVariant, ParseResult]:
        """Parse results of the files that produced records."""
        return {variant: result for variant, result in self.parse_results.items() if result.success}


class ImportSession:
    """
    Parses a set of SPED files, one per variant, in parallel.

    Usage:
        session = ImportSession()
        result = session.parse_files({
            FileVariant.FISCAL: Path("efd_icms_ipi.txt"),
            FileVariant.ECF: Path("ecf_2023.txt"),
        })
        for file_result in result.file_results:
            print(file_result.file_path, file_result.status.value)
    """

    def __init__(self, config: Optional[ExtractorConfig] = None, parser: Optional[SpedParser] = None):
        self.config = config or ExtractorConfig()
        self.parser = parser or SpedParser(
            detector=VariantDetector.from_config(self.config),
            encodings=self.config.import_settings.encodings
        )

    def parse_files(self, paths_by_variant: Mapping[Any, Path]) -> ImportResult:
        """
        Parse every file concurrently.

        Args:
            paths_by_variant: Mapping variant -> file path

        Returns:
            ImportResult with per-variant ParseResults and per-file status
        """
        jobs = [(FileVariant.coerce(v), Path(p)) for v, p in paths_by_variant.items()]
        result = ImportResult()
        if not jobs:
            return result

        workers = min(self.config.import_settings.max_workers, len(jobs))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            outcomes = list(executor.map(lambda job: self.parse_file(*job), jobs))

        for parse_result, file_result in outcomes:
            result.parse_results[file_result.variant] = parse_result
            result.file_results.append(file_result)

        logger.info(
            f"Import session: {len(jobs)} file(s), {result.total_records} records, "
            f"{len(result.failed_files)} failed"
        )
        return result

    def parse_file(self, variant: FileVariant, file_path: Path) -> Tuple[ParseResult, FileResult]:
        """Parse a single file and build its status record."""
        start = time.time()
        parse_result = self.parser.parse_file(file_path, variant=variant)
        elapsed = int((time.time() - start) * 1000)

        stats = parse_result.statistics
        if not parse_result.success:
            status = FileStatus.FAILED
            logger.warning(f"Failed to import {file_path}: {'; '.join(parse_result.errors)}")
        elif stats.lines_with_errors:
            status = FileStatus.PARTIAL
        else:
            status = FileStatus.SUCCESS

        file_result = FileResult(
            variant=variant,
            file_path=file_path,
            status=status,
            records_processed=stats.valid_records,
            lines_with_errors=stats.lines_with_errors,
            errors=list(parse_result.errors),
            processing_time_ms=elapsed
        )
        return parse_result, file_result
