"""
Financial Extractor - turns parsed SPED records into financial and tax data.

Each bookkeeping family contributes different evidence:
- SPED Fiscal: ICMS period totals (E110) and outbound billing (C100)
- SPED Contribuições: PIS/COFINS credits (C100) and period debits (M200/M600)
- ECF: income statement lines (J150)

Every field read goes through the Layout Registry. A rule whose layout is
missing is skipped with an "unsupported layout" warning; extraction of the
remaining rules continues. Missing or malformed data never raises.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from spedtax.core.exceptions import UnsupportedLayoutError
from spedtax.core.money import ZERO
from spedtax.extractors.classification import AccountGroup, classify_account
from spedtax.extractors.models import (
    Costs,
    ExtractionResult,
    Expenses,
    FinancialData,
    Revenue,
    TaxBuckets,
    TaxComposition,
)
from spedtax.parsers.layouts import Layout, LayoutRegistry, default_registry
from spedtax.parsers.models import FileVariant, ParseResult

logger = logging.getLogger(__name__)

OUTBOUND_OPERATION = "1"  # C100 IND_OPER: 0 = entrada, 1 = saída


@dataclass(frozen=True)
class ExtractionOptions:
    """Options for an extraction run."""
    apply_transition: bool = True
    transition_years: Optional[Tuple[int, ...]] = None


class _Accumulator:
    """Mutable totals for one extraction pass."""

    def __init__(self):
        self.gross = ZERO
        self.deductions = ZERO
        self.costs = ZERO
        self.expenses = ZERO
        self.credits: Dict[str, Decimal] = {}
        self.debits: Dict[str, Decimal] = {}
        self.billing = ZERO
        self.financial_sources: List[str] = []
        self.tax_sources: List[str] = []
        self.warnings: List[str] = []

    def add_credit(self, tax: str, amount: Decimal) -> None:
        self.credits[tax] = self.credits.get(tax, ZERO) + amount

    def add_debit(self, tax: str, amount: Decimal) -> None:
        self.debits[tax] = self.debits.get(tax, ZERO) + amount

    def result(self) -> ExtractionResult:
        return ExtractionResult(
            financial_data=FinancialData(
                revenue=Revenue(gross=self.gross, deductions=self.deductions),
                costs=Costs(total=self.costs),
                expenses=Expenses(operating=self.expenses),
                sources=tuple(dict.fromkeys(self.financial_sources))
            ),
            tax_composition=TaxComposition(
                credits=TaxBuckets(**self.credits),
                debits=TaxBuckets(**self.debits),
                gross_billing=self.billing,
                sources=tuple(dict.fromkeys(self.tax_sources))
            ),
            warnings=tuple(self.warnings)
        )


SourcesArg = Union[Mapping, Iterable[Tuple[object, Optional[ParseResult]]]]


class FinancialExtractor:
    """
    Extracts financial data and tax composition from parse results.

    The extractor is stateless between calls; the layout table is injected.

    Usage:
        extractor = FinancialExtractor()
        result = extractor.extract({FileVariant.FISCAL: fiscal_result})
        print(result.tax_composition.debits.icms)
    """

    def __init__(self, registry: Optional[LayoutRegistry] = None):
        self.registry = registry if registry is not None else default_registry()
        self._rules = {
            FileVariant.FISCAL: [
                ("E110", self._extract_icms_summary),
                ("C100", self._extract_billing),
            ],
            FileVariant.CONTRIBUTIONS: [
                ("C100", self._extract_contribution_credits),
                ("M200", self._extract_pis_debits),
                ("M600", self._extract_cofins_debits),
            ],
            FileVariant.ECF: [
                ("J150", self._extract_income_statement),
            ],
        }

    def extract(
        self,
        results_by_variant: SourcesArg,
        options: Optional[ExtractionOptions] = None
    ) -> ExtractionResult:
        """
        Extract and sum evidence from every supplied parse result.

        Args:
            results_by_variant: Mapping variant -> ParseResult, or iterable
                of (variant, ParseResult) pairs. None results are skipped.
            options: Extraction options (passed through, see ExtractionOptions)

        Returns:
            ExtractionResult; all zero when nothing was supplied
        """
        options = options or ExtractionOptions()
        pairs = iter_sources(results_by_variant)

        total = ExtractionResult()
        count = 0
        for variant, parse_result in pairs:
            total = total + self.extract_variant(variant, parse_result)
            count += 1

        logger.info(
            f"Extracted {count} source(s): gross revenue {total.financial_data.revenue.gross}, "
            f"billing {total.tax_composition.gross_billing}, "
            f"{len(total.warnings)} warning(s) (apply_transition={options.apply_transition})"
        )
        return total

    def extract_variant(self, variant, parse_result: Optional[ParseResult]) -> ExtractionResult:
        """
        Extract the evidence of a single parse result.

        Args:
            variant: FileVariant (or coercible value) the result belongs to
            parse_result: ParseResult, or None for "no evidence"

        Returns:
            ExtractionResult for this source alone
        """
        variant = FileVariant.coerce(variant)
        acc = _Accumulator()

        if parse_result is None or not parse_result.records:
            logger.debug(f"No records for {variant.value}, nothing to extract")
            return acc.result()

        for record_type, rule in self._rules.get(variant, []):
            records = parse_result.get(record_type)
            if not records:
                continue
            try:
                layout = self.registry.get(record_type, variant)
            except UnsupportedLayoutError as e:
                logger.warning(e.message)
                acc.warnings.append(e.message)
                continue
            rule(layout, records, acc)

        return acc.result()

    # SPED Fiscal

    def _extract_icms_summary(self, layout: Layout, records, acc: _Accumulator) -> None:
        summary = records[0]
        acc.add_debit("icms", layout.amount(summary, "total_debits"))
        acc.add_credit("icms", layout.amount(summary, "total_credits"))
        acc.tax_sources.append("sped-fiscal:E110")

        if len(records) > 1:
            message = f"{len(records)} E110 records found, only the first was used"
            logger.warning(message)
            acc.warnings.append(message)

    def _extract_billing(self, layout: Layout, records, acc: _Accumulator) -> None:
        outbound = 0
        for record in records:
            if layout.value(record, "operation").strip() != OUTBOUND_OPERATION:
                continue
            acc.billing += layout.amount(record, "document_value")
            outbound += 1
        if outbound:
            acc.tax_sources.append("sped-fiscal:C100")
        logger.debug(f"C100: {outbound} outbound of {len(records)} documents, billing {acc.billing}")

    # SPED Contribuições

    def _extract_contribution_credits(self, layout: Layout, records, acc: _Accumulator) -> None:
        # Every document counts; no filter on operation direction
        for record in records:
            acc.add_credit("pis", layout.amount(record, "pis_value"))
            acc.add_credit("cofins", layout.amount(record, "cofins_value"))
        acc.tax_sources.append("sped-contribuicoes:C100")

    def _extract_pis_debits(self, layout: Layout, records, acc: _Accumulator) -> None:
        for record in records:
            acc.add_debit("pis", layout.amount(record, "pis_due"))
        acc.tax_sources.append("sped-contribuicoes:M200")

    def _extract_cofins_debits(self, layout: Layout, records, acc: _Accumulator) -> None:
        for record in records:
            acc.add_debit("cofins", layout.amount(record, "cofins_due"))
        acc.tax_sources.append("sped-contribuicoes:M600")

    # ECF

    def _extract_income_statement(self, layout: Layout, records, acc: _Accumulator) -> None:
        classified = 0
        for record in records:
            code = layout.value(record, "account_code")
            description = layout.value(record, "description")
            group = classify_account(code, description)
            if group is None:
                logger.debug(f"J150 line not classified: {code} {description!r}")
                continue

            amount = layout.amount(record, "value")
            if group == AccountGroup.GROSS_REVENUE:
                acc.gross += amount
            elif group == AccountGroup.REVENUE_DEDUCTION:
                acc.deductions += amount
            elif group == AccountGroup.COST:
                acc.costs += amount
            elif group == AccountGroup.OPERATING_EXPENSE:
                acc.expenses += amount
            classified += 1

        if classified:
            acc.financial_sources.append("sped-ecf:J150")
        logger.debug(f"J150: {classified} of {len(records)} lines classified")


def iter_sources(sources: Optional[SourcesArg]) -> List[Tuple[FileVariant, Optional[ParseResult]]]:
    """Normalize a mapping or iterable of pairs into (FileVariant, result) pairs."""
    if not sources:
        return []
    items = sources.items() if isinstance(sources, Mapping) else sources
    return [(FileVariant.coerce(variant), result) for variant, result in items]
