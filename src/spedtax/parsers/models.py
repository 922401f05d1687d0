"""
SPED record and parse result data models.

Dataclasses for representing tokenized SPED bookkeeping files.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import pandas as pd

from spedtax.core.exceptions import UnknownVariantError


class FileVariant(Enum):
    """SPED bookkeeping file families."""

    FISCAL = "sped-fiscal"                 # EFD ICMS/IPI (state consumption tax)
    CONTRIBUTIONS = "sped-contribuicoes"   # EFD Contribuições (PIS/COFINS)
    ECF = "sped-ecf"                       # Escrituração Contábil Fiscal (IRPJ/CSLL)

    @property
    def description(self) -> str:
        """Human readable name of the bookkeeping family."""
        return _VARIANT_DESCRIPTIONS[self]

    @classmethod
    def coerce(cls, value) -> "FileVariant":
        """
        Map an enum member, value or alias to a FileVariant.

        Accepts "sped-fiscal", "fiscal", "FISCAL", "contribuicoes", "ecf", ...

        Raises:
            UnknownVariantError: If value matches no variant
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            key = value.strip().lower()
            for variant in cls:
                if key in (variant.value, variant.name.lower(), variant.value.replace("sped-", "")):
                    return variant
        raise UnknownVariantError(str(value))


_VARIANT_DESCRIPTIONS = {
    FileVariant.FISCAL: "SPED Fiscal (EFD ICMS/IPI)",
    FileVariant.CONTRIBUTIONS: "SPED Contribuições (EFD PIS/COFINS)",
    FileVariant.ECF: "ECF (Escrituração Contábil Fiscal)",
}


@dataclass(frozen=True)
class Record:
    """One SPED line: record type plus its fields, verbatim."""

    record_type: str
    fields: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.fields, tuple):
            object.__setattr__(self, "fields", tuple(self.fields))

    def field(self, index: int, default: str = "") -> str:
        """Return field at index, or default when out of range."""
        if 0 <= index < len(self.fields):
            return self.fields[index]
        return default

    def __len__(self) -> int:
        return len(self.fields)


@dataclass(frozen=True)
class CompanyData:
    """Company/header attributes from the 0000 record."""

    name: str = ""
    tax_id: str = ""
    period_start: str = ""
    period_end: str = ""
    state: str = ""
    layout_version: str = ""
    tax_regime: str = ""

    @property
    def is_empty(self) -> bool:
        """True when no identifying attribute was found."""
        return not (self.name or self.tax_id)


@dataclass(frozen=True)
class ParseStatistics:
    """Counters collected while parsing a file."""

    lines_processed: int = 0
    lines_with_errors: int = 0
    valid_records: int = 0
    counts_by_type: Mapping[str, int] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "counts_by_type", MappingProxyType(dict(self.counts_by_type)))

    @property
    def distinct_types(self) -> int:
        """Number of distinct record types found."""
        return len(self.counts_by_type)


@dataclass(frozen=True)
class ParseResult:
    """Result of parsing a SPED bookkeeping file."""

    success: bool
    variant: FileVariant = FileVariant.FISCAL
    records: Mapping[str, Tuple[Record, ...]] = field(default_factory=dict)
    company: CompanyData = field(default_factory=CompanyData)
    statistics: ParseStatistics = field(default_factory=ParseStatistics)
    errors: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()
    source_file: str = ""

    def __post_init__(self):
        frozen_records = {
            record_type: tuple(records) for record_type, records in self.records.items()
        }
        object.__setattr__(self, "records", MappingProxyType(frozen_records))
        object.__setattr__(self, "variant", FileVariant.coerce(self.variant))
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @classmethod
    def from_fields(
        cls,
        variant,
        records: Mapping[str, Iterable[Sequence[str]]],
        company: Optional[CompanyData] = None,
        source_file: str = ""
    ) -> "ParseResult":
        """
        Build a ParseResult from already tokenized field lists.

        Args:
            variant: FileVariant (or coercible value)
            records: Record type -> list of field lists (without the type)
            company: Optional company data
            source_file: Optional source identifier

        Returns:
            Successful ParseResult with statistics derived from the records
        """
        built: Dict[str, List[Record]] = {}
        for record_type, field_lists in records.items():
            built[record_type] = [Record(record_type, tuple(fields)) for fields in field_lists]

        counts = {record_type: len(items) for record_type, items in built.items()}
        total = sum(counts.values())
        return cls(
            success=total > 0,
            variant=variant,
            records=built,
            company=company or CompanyData(),
            statistics=ParseStatistics(
                lines_processed=total,
                valid_records=total,
                counts_by_type=counts
            ),
            source_file=source_file
        )

    def get(self, record_type: str) -> Tuple[Record, ...]:
        """Get records of a type in file order (empty tuple if absent)."""
        return self.records.get(record_type, ())

    def has(self, record_type: str) -> bool:
        """Check whether any record of a type was found."""
        return bool(self.records.get(record_type))

    @property
    def record_types(self) -> List[str]:
        """Record types in first-seen order."""
        return list(self.records)

    @property
    def has_partial_data_loss(self) -> bool:
        """True when some lines were rejected even though parsing succeeded."""
        return self.statistics.lines_with_errors > 0

    def records_frame(self, record_type: str) -> pd.DataFrame:
        """
        Raw fields of one record type as a DataFrame.

        Columns are positional (field_0, field_1, ...); shorter records are
        padded with empty strings.
        """
        rows = [list(record.fields) for record in self.get(record_type)]
        width = max((len(row) for row in rows), default=0)
        padded = [row + [""] * (width - len(row)) for row in rows]
        return pd.DataFrame(padded, columns=[f"field_{i}" for i in range(width)])
