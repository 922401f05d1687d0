"""
Layout Registry - field offsets per (record type, file variant).

The same record type code means different things in different bookkeeping
families (C100 in EFD ICMS/IPI vs C100 in EFD Contribuições), so every
field read goes through an explicit, validated offset table instead of
positional indexing scattered through the extractors.

Offsets are 0-based positions into Record.fields, i.e. counted after the
record type token.

Usage:
    registry = default_registry()
    layout = registry.get("E110", FileVariant.FISCAL)
    debits = layout.amount(record, "total_debits")
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from spedtax.core.exceptions import LayoutError, UnsupportedLayoutError
from spedtax.core.money import parse_amount
from spedtax.parsers.models import FileVariant, Record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Layout:
    """Named field offsets for one record type of one variant."""

    record_type: str
    variant: FileVariant
    fields: Mapping[str, int] = field(default_factory=dict)
    description: str = ""

    def __post_init__(self):
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def offset(self, name: str) -> int:
        """
        Offset of a named field.

        Raises:
            LayoutError: If the layout has no field with that name
        """
        try:
            return self.fields[name]
        except KeyError:
            raise LayoutError(
                f"Layout {self.record_type}/{self.variant.value} has no field '{name}'"
            ) from None

    def value(self, record: Record, name: str) -> str:
        """Raw value of a named field ('' when the record is too short)."""
        return record.field(self.offset(name))

    def amount(self, record: Record, name: str) -> Decimal:
        """Monetary value of a named field (zero when missing/unparsable)."""
        return parse_amount(self.value(record, name))

    def validate(self) -> None:
        """
        Check the layout definition.

        Raises:
            LayoutError: On empty record type, bad variant or bad offsets
        """
        if not self.record_type or not str(self.record_type).strip():
            raise LayoutError("Layout record type must not be empty")
        if not isinstance(self.variant, FileVariant):
            raise LayoutError(
                f"Layout {self.record_type}: variant must be a FileVariant, got {self.variant!r}"
            )

        seen: Dict[int, str] = {}
        for name, offset in self.fields.items():
            if isinstance(offset, bool) or not isinstance(offset, int) or offset < 0:
                raise LayoutError(
                    f"Layout {self.record_type}/{self.variant.value}: "
                    f"offset for '{name}' must be a non-negative int, got {offset!r}"
                )
            if offset in seen:
                raise LayoutError(
                    f"Layout {self.record_type}/{self.variant.value}: "
                    f"fields '{seen[offset]}' and '{name}' share offset {offset}"
                )
            seen[offset] = name


class LayoutRegistry:
    """
    Validated lookup table of record layouts.

    Invalid tables fail at construction, never at extraction time.
    """

    def __init__(self, layouts: Iterable[Layout] = ()):
        self._layouts: Dict[Tuple[str, FileVariant], Layout] = {}
        for layout in layouts:
            self.register(layout)

    def register(self, layout: Layout) -> None:
        """
        Add a layout to the registry.

        Raises:
            LayoutError: If the layout is invalid or already registered
        """
        layout.validate()
        key = (layout.record_type, layout.variant)
        if key in self._layouts:
            raise LayoutError(
                f"Duplicate layout for {layout.record_type}/{layout.variant.value}"
            )
        self._layouts[key] = layout

    def get(self, record_type: str, variant) -> Layout:
        """
        Get the layout for a record type of a variant.

        Raises:
            UnsupportedLayoutError: If no layout is registered for the pair
        """
        layout = self.find(record_type, variant)
        if layout is None:
            raise UnsupportedLayoutError(record_type, FileVariant.coerce(variant).value)
        return layout

    def find(self, record_type: str, variant) -> Optional[Layout]:
        """Get the layout for a record type of a variant, or None."""
        return self._layouts.get((record_type, FileVariant.coerce(variant)))

    def record_types(self, variant) -> List[str]:
        """Record types with a registered layout for a variant."""
        variant = FileVariant.coerce(variant)
        return [rt for rt, v in self._layouts if v == variant]

    def __contains__(self, key) -> bool:
        record_type, variant = key
        return self.find(record_type, variant) is not None

    def __len__(self) -> int:
        return len(self._layouts)


# Built-in layout table
_DEFAULT_LAYOUTS = [
    # EFD ICMS/IPI
    Layout("0000", FileVariant.FISCAL, {
        "layout_version": 0, "purpose": 1, "period_start": 2, "period_end": 3,
        "name": 4, "tax_id": 5, "state": 6,
    }, "Abertura do arquivo digital"),
    Layout("0200", FileVariant.FISCAL, {
        "item_code": 0, "description": 1, "barcode": 2, "previous_code": 3, "unit": 4,
    }, "Tabela de identificação do item"),
    Layout("C100", FileVariant.FISCAL, {
        "operation": 0, "issuer": 1, "participant": 2, "model": 3, "status": 4,
        "series": 5, "number": 6, "access_key": 7, "document_date": 8,
        "entry_date": 9, "document_value": 10, "icms_value": 20,
    }, "Nota fiscal (código 01, 1B, 04, 55 e 65)"),
    Layout("C170", FileVariant.FISCAL, {
        "item_number": 0, "item_code": 1, "description": 2, "quantity": 3, "unit": 4,
        "item_value": 5, "discount": 6, "cfop": 9, "icms_base": 11, "icms_rate": 12,
        "icms_value": 13,
    }, "Itens do documento"),
    Layout("E110", FileVariant.FISCAL, {
        "total_debits": 0, "total_credits": 1,
    }, "Apuração do ICMS - operações próprias"),

    # EFD Contribuições
    Layout("0000", FileVariant.CONTRIBUTIONS, {
        "layout_version": 0, "bookkeeping_type": 1, "special_situation": 2,
        "previous_receipt": 3, "period_start": 4, "period_end": 5, "name": 6,
        "tax_id": 7, "state": 8,
    }, "Abertura do arquivo digital"),
    Layout("0110", FileVariant.CONTRIBUTIONS, {
        "regime_code": 0,
    }, "Regimes de apuração da contribuição social"),
    Layout("C100", FileVariant.CONTRIBUTIONS, {
        "operation": 0, "document_value": 10, "pis_value": 26, "cofins_value": 32,
    }, "Documento - nota fiscal"),
    Layout("M200", FileVariant.CONTRIBUTIONS, {
        "pis_due": 0,
    }, "Consolidação da contribuição para o PIS/PASEP do período"),
    Layout("M600", FileVariant.CONTRIBUTIONS, {
        "cofins_due": 0,
    }, "Consolidação da COFINS do período"),

    # ECF
    Layout("0000", FileVariant.ECF, {
        "book_name": 0, "layout_version": 1, "tax_id": 2, "name": 3,
        "period_start": 8, "period_end": 9,
    }, "Abertura do arquivo digital e identificação da pessoa jurídica"),
    Layout("0010", FileVariant.ECF, {
        "tax_regime": 3,
    }, "Parâmetros de tributação"),
    Layout("J150", FileVariant.ECF, {
        "period_start": 0, "period_end": 1, "account_code": 2, "description": 3,
        "value": 4, "balance_indicator": 5,
    }, "Demonstração do resultado do exercício"),
]


def default_registry() -> LayoutRegistry:
    """Build a registry with the built-in layout table."""
    return LayoutRegistry(_DEFAULT_LAYOUTS)
