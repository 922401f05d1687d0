"""Financial and tax data models produced by the extractors."""

from dataclasses import dataclass, field, fields
from decimal import Decimal
from typing import Dict, Tuple

from spedtax.core.money import ZERO, percentage


def _union(left: Tuple[str, ...], right: Tuple[str, ...]) -> Tuple[str, ...]:
    """Order-preserving union of provenance tags."""
    return tuple(dict.fromkeys(left + right))


@dataclass(frozen=True)
class Revenue:
    """Income statement revenue lines."""
    gross: Decimal = ZERO
    deductions: Decimal = ZERO

    @property
    def net(self) -> Decimal:
        """Net revenue (gross - deductions)."""
        return self.gross - self.deductions

    def __add__(self, other: "Revenue") -> "Revenue":
        return Revenue(self.gross + other.gross, self.deductions + other.deductions)


@dataclass(frozen=True)
class Costs:
    """Cost of goods/products/services sold."""
    total: Decimal = ZERO

    def __add__(self, other: "Costs") -> "Costs":
        return Costs(self.total + other.total)


@dataclass(frozen=True)
class Expenses:
    """Operating expenses (selling, administrative)."""
    operating: Decimal = ZERO

    def __add__(self, other: "Expenses") -> "Expenses":
        return Expenses(self.operating + other.operating)


@dataclass(frozen=True)
class FinancialData:
    """
    Income statement view of the company.

    Instances are immutable; combine evidence from several files with `+`.
    """
    revenue: Revenue = field(default_factory=Revenue)
    costs: Costs = field(default_factory=Costs)
    expenses: Expenses = field(default_factory=Expenses)
    sources: Tuple[str, ...] = ()

    @property
    def gross_profit(self) -> Decimal:
        return self.revenue.net - self.costs.total

    @property
    def operating_profit(self) -> Decimal:
        return self.gross_profit - self.expenses.operating

    @property
    def gross_margin(self) -> Decimal:
        """Gross profit as % of net revenue (0 when net revenue <= 0)."""
        return percentage(self.gross_profit, self.revenue.net)

    @property
    def operating_margin(self) -> Decimal:
        """Operating profit as % of net revenue (0 when net revenue <= 0)."""
        return percentage(self.operating_profit, self.revenue.net)

    @property
    def is_empty(self) -> bool:
        return (
            self.revenue.gross == ZERO
            and self.revenue.deductions == ZERO
            and self.costs.total == ZERO
            and self.expenses.operating == ZERO
        )

    def __add__(self, other: "FinancialData") -> "FinancialData":
        if not isinstance(other, FinancialData):
            return NotImplemented
        return FinancialData(
            revenue=self.revenue + other.revenue,
            costs=self.costs + other.costs,
            expenses=self.expenses + other.expenses,
            sources=_union(self.sources, other.sources)
        )

    def to_dict(self) -> Dict:
        return {
            "revenue": {
                "gross": self.revenue.gross,
                "deductions": self.revenue.deductions,
                "net": self.revenue.net,
            },
            "costs": {"total": self.costs.total},
            "expenses": {"operating": self.expenses.operating},
            "result": {
                "gross_profit": self.gross_profit,
                "operating_profit": self.operating_profit,
                "gross_margin": self.gross_margin,
                "operating_margin": self.operating_margin,
            },
            "sources": list(self.sources),
        }


TAX_NAMES = ("icms", "pis", "cofins", "ipi", "iss")


@dataclass(frozen=True)
class TaxBuckets:
    """One amount per tax."""
    icms: Decimal = ZERO     # state consumption tax
    pis: Decimal = ZERO      # federal contribution A
    cofins: Decimal = ZERO   # federal contribution B
    ipi: Decimal = ZERO
    iss: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum((getattr(self, name) for name in TAX_NAMES), ZERO)

    def items(self):
        return [(name, getattr(self, name)) for name in TAX_NAMES]

    def __add__(self, other: "TaxBuckets") -> "TaxBuckets":
        if not isinstance(other, TaxBuckets):
            return NotImplemented
        return TaxBuckets(**{
            f.name: getattr(self, f.name) + getattr(other, f.name) for f in fields(self)
        })

    def to_dict(self) -> Dict[str, Decimal]:
        result = dict(self.items())
        result["total"] = self.total
        return result


@dataclass(frozen=True)
class TaxComposition:
    """Tax credits and debits of the period, plus gross billing."""
    credits: TaxBuckets = field(default_factory=TaxBuckets)
    debits: TaxBuckets = field(default_factory=TaxBuckets)
    gross_billing: Decimal = ZERO
    sources: Tuple[str, ...] = ()

    @property
    def net_taxes(self) -> TaxBuckets:
        """Per tax max(0, debit - credit)."""
        return TaxBuckets(**{
            name: max(ZERO, getattr(self.debits, name) - getattr(self.credits, name))
            for name in TAX_NAMES
        })

    @property
    def effective_rates(self) -> TaxBuckets:
        """Net taxes as % of gross billing (0 when billing <= 0)."""
        net = self.net_taxes
        return TaxBuckets(**{
            name: percentage(getattr(net, name), self.gross_billing)
            for name in TAX_NAMES
        })

    @property
    def effective_rate(self) -> Decimal:
        """Total effective tax rate in %."""
        return percentage(self.net_taxes.total, self.gross_billing)

    @property
    def is_empty(self) -> bool:
        return (
            self.credits.total == ZERO
            and self.debits.total == ZERO
            and self.gross_billing == ZERO
        )

    def __add__(self, other: "TaxComposition") -> "TaxComposition":
        if not isinstance(other, TaxComposition):
            return NotImplemented
        return TaxComposition(
            credits=self.credits + other.credits,
            debits=self.debits + other.debits,
            gross_billing=self.gross_billing + other.gross_billing,
            sources=_union(self.sources, other.sources)
        )

    def to_dict(self) -> Dict:
        return {
            "credits": self.credits.to_dict(),
            "debits": self.debits.to_dict(),
            "net_taxes": self.net_taxes.to_dict(),
            "effective_rates": {**dict(self.effective_rates.items()), "total": self.effective_rate},
            "gross_billing": self.gross_billing,
            "sources": list(self.sources),
        }


@dataclass(frozen=True)
class ExtractionResult:
    """Output of the financial extractor."""
    financial_data: FinancialData = field(default_factory=FinancialData)
    tax_composition: TaxComposition = field(default_factory=TaxComposition)
    warnings: Tuple[str, ...] = ()

    def __add__(self, other: "ExtractionResult") -> "ExtractionResult":
        if not isinstance(other, ExtractionResult):
            return NotImplemented
        return ExtractionResult(
            financial_data=self.financial_data + other.financial_data,
            tax_composition=self.tax_composition + other.tax_composition,
            warnings=self.warnings + other.warnings
        )
