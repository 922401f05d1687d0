"""
Variant Detector - works out which bookkeeping family a file belongs to.

Uses a layered detection approach:
1. Filename patterns
2. Content analysis (identifier record types in the first lines)
3. Default fallback (configured default variant, SPED Fiscal)

Usage:
    detector = VariantDetector()
    result = detector.detect(content.splitlines(), file_name="efd_contribuicoes_2024.txt")
    print(f"Variant: {result.variant}, Method: {result.method}")
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from spedtax.parsers.models import FileVariant

logger = logging.getLogger(__name__)


class DetectionMethod(Enum):
    """How the variant was detected."""
    CONTENT = "content"     # From identifier record types
    FILENAME = "filename"   # From filename patterns
    DEFAULT = "default"     # Fallback to default


@dataclass
class DetectionResult:
    """Result of variant detection."""
    variant: FileVariant
    method: DetectionMethod
    confidence: float = 1.0  # 0.0 to 1.0
    matched: List[str] = field(default_factory=list)

    def __str__(self) -> str:
        return f"{self.variant.value} (via {self.method.value}, confidence={self.confidence:.2f})"


# Record types that only (or mostly) appear in one family
IDENTIFIER_RECORDS: Dict[FileVariant, frozenset] = {
    FileVariant.CONTRIBUTIONS: frozenset([
        "0110", "0140",
        "A100", "A110", "A111",
        "C180", "C181", "C185", "C188",
        "D100", "D101", "D105", "D111",
        "F100", "F111", "F120", "F129", "F130", "F139", "F150",
        "F200", "F205", "F210", "F211",
        "I100", "I199",
        "M100", "M105", "M110", "M115", "M200", "M205", "M210", "M215", "M220", "M225",
        "M400", "M410", "M500", "M505", "M510", "M515", "M600", "M605", "M610", "M615",
        "M620", "M625", "M800", "M810",
        "P100", "P110", "P199", "P200", "P210",
        "1001", "1100", "1200", "1300", "1500",
    ]),
    FileVariant.ECF: frozenset([
        "0010", "0020",
        "J001", "J050", "J051", "J100", "J150",
        "K001", "K030", "K155", "K156",
        "L001", "L030", "L100",
        "M001", "M010", "M300", "M350",
        "N001", "N500", "N600", "N610", "N620", "N630", "N650", "N660", "N670",
        "P001", "P030", "P130", "P150", "P230",
        "T001", "T030", "T120", "T150",
        "U001", "U030", "U100",
        "Y540",
    ]),
    # 0001/0150/0190/0200/9900 open and close EFD Contribuições files too
    FileVariant.FISCAL: frozenset([
        "0005",
        "C100", "C170", "C190", "C197",
        "E110", "E111", "E116", "E200", "E210", "E220",
        "H010", "H020",
    ]),
}

# Checked in order: contributions before fiscal, since "efd_" prefixes both
FILENAME_PATTERNS = [
    (FileVariant.CONTRIBUTIONS, [
        re.compile(r"contribuic(o|ã)es", re.IGNORECASE),
        re.compile(r"pis[_\-]?cofins", re.IGNORECASE),
        re.compile(r"efd[_\-]?contribuic", re.IGNORECASE),
        re.compile(r"efd[_\-]?pis", re.IGNORECASE),
        re.compile(r"sped[_\-]?contribuic", re.IGNORECASE),
        re.compile(r"sped[_\-]?pis", re.IGNORECASE),
    ]),
    (FileVariant.ECF, [
        re.compile(r"^ecf[_\-]", re.IGNORECASE),
        re.compile(r"[_\-]ecf[_\-.]", re.IGNORECASE),
        re.compile(r"escriturac(a|ã)o[_\-]?contabil[_\-]?fiscal", re.IGNORECASE),
        re.compile(r"sped[_\-]?ecf", re.IGNORECASE),
    ]),
    (FileVariant.FISCAL, [
        re.compile(r"^efd[_\-]", re.IGNORECASE),
        re.compile(r"fiscal", re.IGNORECASE),
        re.compile(r"icms[_\-]?ipi", re.IGNORECASE),
        re.compile(r"sped[_\-]?fiscal", re.IGNORECASE),
        re.compile(r"efd[_\-]?icms", re.IGNORECASE),
    ]),
]


class VariantDetector:
    """
    Detects the bookkeeping family of a SPED file.

    The file name is checked first: the opening records (0001, 0150, 0200,
    9900, ...) are shared by EFD ICMS/IPI and EFD Contribuições, so content
    counts only decide when the name carries no signal.
    """

    def __init__(
        self,
        default_variant=FileVariant.FISCAL,
        lines_to_scan: int = 100
    ):
        self.default_variant = FileVariant.coerce(default_variant)
        self.lines_to_scan = lines_to_scan

    @classmethod
    def from_config(cls, config) -> "VariantDetector":
        """Create a detector from an ExtractorConfig."""
        return cls(default_variant=config.default_variant, lines_to_scan=config.lines_to_scan)

    def detect(self, lines: Sequence[str], file_name: str = "") -> DetectionResult:
        """
        Detect the variant of a file.

        Args:
            lines: File lines (only the first lines_to_scan are inspected)
            file_name: Optional file name, checked before the content

        Returns:
            DetectionResult with variant, method and confidence
        """
        if file_name:
            result = self._detect_from_filename(file_name)
            if result:
                logger.debug(f"Variant detected from filename '{file_name}': {result}")
                return result

        result = self._detect_from_content(lines)
        if result:
            logger.debug(f"Variant detected from content: {result}")
            return result

        logger.debug(f"No variant signal, using default {self.default_variant.value}")
        return DetectionResult(
            variant=self.default_variant,
            method=DetectionMethod.DEFAULT,
            confidence=0.5
        )

    def _detect_from_content(self, lines: Iterable[str]) -> Optional[DetectionResult]:
        counts = {variant: 0 for variant in IDENTIFIER_RECORDS}
        matched: Dict[FileVariant, List[str]] = {variant: [] for variant in IDENTIFIER_RECORDS}

        for index, line in enumerate(lines):
            if index >= self.lines_to_scan:
                break
            if not line or not line.strip():
                continue
            parts = line.strip().split("|")
            if len(parts) < 2:
                continue
            record_type = parts[1]
            for variant, identifiers in IDENTIFIER_RECORDS.items():
                if record_type in identifiers:
                    counts[variant] += 1
                    if record_type not in matched[variant]:
                        matched[variant].append(record_type)

        total = sum(counts.values())
        if total == 0:
            return None

        best = max(counts.values())
        leaders = [variant for variant, count in counts.items() if count == best]
        if len(leaders) > 1:
            variant = self.default_variant if self.default_variant in leaders else leaders[0]
        else:
            variant = leaders[0]

        return DetectionResult(
            variant=variant,
            method=DetectionMethod.CONTENT,
            confidence=round(counts[variant] / total, 2),
            matched=matched[variant]
        )

    def _detect_from_filename(self, file_name: str) -> Optional[DetectionResult]:
        for variant, patterns in FILENAME_PATTERNS:
            for pattern in patterns:
                if pattern.search(file_name):
                    return DetectionResult(
                        variant=variant,
                        method=DetectionMethod.FILENAME,
                        confidence=0.8,
                        matched=[pattern.pattern]
                    )
        return None
