"""
SPED Record Parser.

Tokenizes pipe-delimited SPED bookkeeping files into typed records grouped
by record type. Malformed lines are counted and skipped; only empty input or
a file without a single valid record is a failed parse.

Line format: |RECORD_TYPE|field1|field2|...|fieldN|
"""

import logging
from pathlib import Path
from typing import Dict, List, Optional

from spedtax.core.exceptions import FileReadError, SpedError
from spedtax.core.file_reader import decode_content, read_file
from spedtax.parsers.detector import VariantDetector
from spedtax.parsers.layouts import LayoutRegistry, default_registry
from spedtax.parsers.models import (
    CompanyData,
    FileVariant,
    ParseResult,
    ParseStatistics,
    Record,
)

logger = logging.getLogger(__name__)

DELIMITER = "|"
HEADER_RECORD = "0000"

# Record carrying the tax regime, per variant
REGIME_RECORDS = {
    FileVariant.ECF: ("0010", "tax_regime"),
    FileVariant.CONTRIBUTIONS: ("0110", "regime_code"),
}

# EFD Contribuições 0110 COD_INC_TRIB
CONTRIBUTIONS_REGIMES = {
    "1": "Não-cumulativo",
    "2": "Cumulativo",
    "3": "Não-cumulativo e cumulativo",
}

# ECF 0010 FORMA_TRIB
ECF_REGIMES = {
    "1": "Lucro Real",
    "2": "Lucro Real/Arbitrado",
    "3": "Lucro Presumido/Real",
    "4": "Lucro Presumido/Real/Arbitrado",
    "5": "Lucro Presumido",
    "6": "Lucro Arbitrado",
    "7": "Lucro Presumido/Arbitrado",
    "8": "Imune do IRPJ",
    "9": "Isento do IRPJ",
}


def tokenize_line(line: str) -> Optional[Record]:
    """
    Split one line into a Record.

    Returns:
        Record, or None when the line is not a framed SPED record
    """
    line = line.strip()
    if not (line.startswith(DELIMITER) and line.endswith(DELIMITER)):
        return None

    parts = line.split(DELIMITER)
    # "", TYPE, fields..., ""
    if len(parts) < 3:
        return None

    record_type = parts[1].strip()
    if not record_type:
        return None

    return Record(record_type, tuple(parts[2:-1]))


class SpedParser:
    """
    Parser for SPED bookkeeping files (EFD ICMS/IPI, EFD Contribuições, ECF).

    The parser keeps no state between calls; one instance can parse any
    number of files, from any number of threads.

    Usage:
        parser = SpedParser()
        result = parser.parse_file(Path("efd_icms_ipi_202301.txt"))
        if result.success:
            for record in result.get("C100"):
                ...
    """

    def __init__(
        self,
        registry: Optional[LayoutRegistry] = None,
        detector: Optional[VariantDetector] = None,
        encodings: Optional[List[str]] = None
    ):
        self.registry = registry if registry is not None else default_registry()
        self.detector = detector or VariantDetector()
        self.encodings = encodings

    def parse_file(self, file_path: Path, variant=None) -> ParseResult:
        """
        Read and parse a SPED file.

        Never raises: unreadable or missing files give a failed result.

        Args:
            file_path: Path to the SPED text file
            variant: FileVariant, or None to detect it

        Returns:
            ParseResult
        """
        file_path = Path(file_path)

        try:
            content = read_file(file_path, self.encodings)
        except FileReadError as e:
            logger.warning(f"Could not read {file_path}: {e.message}")
            return self._failed(e.message, variant, str(file_path))

        return self.parse(content, variant=variant, source_file=str(file_path))

    def parse_bytes(self, data: bytes, variant=None, source_file: str = "") -> ParseResult:
        """Decode raw bytes and parse them."""
        try:
            content = decode_content(data, self.encodings)
        except FileReadError as e:
            logger.warning(f"Could not decode {source_file or 'content'}: {e.message}")
            return self._failed(e.message, variant, source_file)

        return self.parse(content, variant=variant, source_file=source_file)

    def parse(self, content: Optional[str], variant=None, source_file: str = "") -> ParseResult:
        """
        Parse SPED content.

        Args:
            content: File content as text
            variant: FileVariant (or coercible value), or None to detect it
            source_file: Source identifier for messages

        Returns:
            ParseResult with records grouped by type, company data and
            statistics
        """
        if content is None or not content.strip():
            logger.warning(f"Empty SPED content: {source_file or '<memory>'}")
            return self._failed("Empty content", variant, source_file)

        lines = content.split("\n")
        # A final newline terminates the last line, it does not start a new one
        if lines and lines[-1] == "":
            lines.pop()

        if variant is None:
            detection = self.detector.detect(lines, file_name=Path(source_file).name if source_file else "")
            variant = detection.variant
            logger.debug(f"Detected {source_file or '<memory>'} as {detection}")
        else:
            variant = FileVariant.coerce(variant)

        records: Dict[str, List[Record]] = {}
        lines_with_errors = 0
        valid_records = 0
        warnings: List[str] = []

        for line_number, raw_line in enumerate(lines, start=1):
            line = raw_line.rstrip("\r")
            if not line.strip():
                continue

            record = tokenize_line(line)
            if record is None:
                lines_with_errors += 1
                logger.debug(f"Line {line_number}: not a SPED record: {line[:60]!r}")
                continue

            records.setdefault(record.record_type, []).append(record)
            valid_records += 1

        if lines_with_errors:
            warnings.append(f"{lines_with_errors} line(s) rejected as malformed")

        company = self._extract_company(records, variant, warnings)

        statistics = ParseStatistics(
            lines_processed=len(lines),
            lines_with_errors=lines_with_errors,
            valid_records=valid_records,
            counts_by_type={rt: len(items) for rt, items in records.items()}
        )

        errors: List[str] = []
        if valid_records == 0:
            errors.append("No valid SPED records found")
            logger.warning(f"No valid SPED records in {source_file or '<memory>'}")

        logger.info(
            f"Parsed {source_file or '<memory>'} as {variant.value}: "
            f"{statistics.lines_processed} lines, {valid_records} records, "
            f"{statistics.distinct_types} types, {lines_with_errors} errors"
        )

        return ParseResult(
            success=valid_records > 0,
            variant=variant,
            records=records,
            company=company,
            statistics=statistics,
            errors=errors,
            warnings=warnings,
            source_file=source_file
        )

    def _extract_company(
        self,
        records: Dict[str, List[Record]],
        variant: FileVariant,
        warnings: List[str]
    ) -> CompanyData:
        """Company data from the first 0000 record plus the regime record."""
        values = {}

        headers = records.get(HEADER_RECORD)
        if headers:
            layout = self.registry.find(HEADER_RECORD, variant)
            if layout is None:
                warnings.append(f"Unsupported layout: {HEADER_RECORD}/{variant.value}")
            else:
                header = headers[0]
                for name in ("name", "tax_id", "period_start", "period_end", "state", "layout_version"):
                    if name in layout.fields:
                        values[name] = layout.value(header, name).strip()
            if len(headers) > 1:
                warnings.append(f"{len(headers)} header records found, using the first")
        else:
            warnings.append("Header record 0000 not found")

        values["tax_regime"] = self._extract_regime(records, variant)
        return CompanyData(**values)

    def _extract_regime(self, records: Dict[str, List[Record]], variant: FileVariant) -> str:
        if variant not in REGIME_RECORDS:
            return ""

        record_type, field_name = REGIME_RECORDS[variant]
        regime_records = records.get(record_type)
        layout = self.registry.find(record_type, variant)
        if not regime_records or layout is None:
            return ""

        code = layout.value(regime_records[0], field_name).strip()
        names = ECF_REGIMES if variant == FileVariant.ECF else CONTRIBUTIONS_REGIMES
        return names.get(code, code)

    @staticmethod
    def _failed(message: str, variant, source_file: str) -> ParseResult:
        try:
            variant = FileVariant.coerce(variant) if variant is not None else FileVariant.FISCAL
        except SpedError:
            variant = FileVariant.FISCAL
        return ParseResult(
            success=False,
            variant=variant,
            errors=[message],
            source_file=source_file
        )
