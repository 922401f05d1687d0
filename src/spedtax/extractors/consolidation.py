"""
Consolidation Orchestrator - merges per-variant extractions into one dataset.

Responsibilities:
- Run the Financial Extractor over every supplied source and sum the results
- Resolve company info with an explicit variant priority list
- Build the new tax regime transition shares from an injected schedule
- Assess data quality and emit observations

The orchestrator holds no module level state; build one per session.

Usage:
    orchestrator = ConsolidationOrchestrator(transition_schedule=my_schedule)
    dataset = orchestrator.consolidate({
        FileVariant.FISCAL: fiscal_result,
        FileVariant.CONTRIBUTIONS: contributions_result,
    })
    print(dataset.quality.level, dataset.tax_composition.effective_rate)
"""

import logging
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal
from enum import Enum
from numbers import Real
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from spedtax.core.config import ExtractorConfig
from spedtax.core.exceptions import TransitionScheduleError
from spedtax.core.money import ZERO
from spedtax.extractors.financial import (
    ExtractionOptions,
    FinancialExtractor,
    SourcesArg,
    iter_sources,
)
from spedtax.extractors.models import (
    ExtractionResult,
    FinancialData,
    TAX_NAMES,
    TaxComposition,
)
from spedtax.parsers.models import FileVariant, ParseResult

logger = logging.getLogger(__name__)

EXTRACTOR_VERSION = "1.0.0"

# Per attribute, first non-empty value in this order wins
COMPANY_PRIORITY = (FileVariant.FISCAL, FileVariant.CONTRIBUTIONS, FileVariant.ECF)
REGIME_PRIORITY = (FileVariant.ECF, FileVariant.CONTRIBUTIONS)
COMPANY_ATTRIBUTES = ("name", "tax_id", "period_start", "period_end", "state")


@dataclass(frozen=True)
class CompanyInfo:
    """Company attributes resolved across sources."""
    name: str = ""
    tax_id: str = ""
    period_start: str = ""
    period_end: str = ""
    state: str = ""
    tax_regime: str = ""
    source: str = ""  # variant that supplied the name/tax id

    @property
    def is_empty(self) -> bool:
        return not (self.name or self.tax_id)


@dataclass(frozen=True)
class TransitionShare:
    """Split between current system and new regime for one year."""
    year: int
    new_regime: float

    @property
    def current_system(self) -> float:
        return round(1.0 - self.new_regime, 10)


@dataclass(frozen=True)
class TransitionSchedule:
    """New regime share per year."""
    shares: Mapping[int, TransitionShare] = field(default_factory=dict)

    @property
    def years(self) -> List[int]:
        return sorted(self.shares)

    def share(self, year: int) -> Optional[TransitionShare]:
        return self.shares.get(year)


class QualityLevel(Enum):
    """Data quality level."""
    HIGH = "Alto"
    MEDIUM = "Médio"
    LOW = "Baixo"


@dataclass(frozen=True)
class DataQuality:
    """Quality assessment; every sub-score is in 0-25."""
    completeness: int = 0
    consistency: int = 0
    reasonableness: int = 0
    diversity: int = 0
    level: QualityLevel = QualityLevel.LOW
    recommendations: Tuple[str, ...] = ()

    @property
    def score(self) -> int:
        return self.completeness + self.consistency + self.reasonableness + self.diversity


@dataclass(frozen=True)
class ConsolidationMetadata:
    processed_at: datetime
    variants: Tuple[str, ...] = ()
    options: ExtractionOptions = field(default_factory=ExtractionOptions)
    extractor_version: str = EXTRACTOR_VERSION


@dataclass(frozen=True)
class ConsolidatedDataset:
    """Consolidated view of every imported bookkeeping file."""
    company: CompanyInfo
    financial_data: FinancialData
    tax_composition: TaxComposition
    transition: Optional[TransitionSchedule]
    quality: DataQuality
    metadata: ConsolidationMetadata
    observations: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        """Plain dict representation (amounts as strings)."""
        transition = None
        if self.transition is not None:
            transition = {
                year: {
                    "current_system": share.current_system,
                    "new_regime": share.new_regime,
                }
                for year, share in sorted(self.transition.shares.items())
            }

        data = {
            "company": {
                "name": self.company.name,
                "tax_id": self.company.tax_id,
                "period_start": self.company.period_start,
                "period_end": self.company.period_end,
                "state": self.company.state,
                "tax_regime": self.company.tax_regime,
                "source": self.company.source,
            },
            "financial_data": self.financial_data.to_dict(),
            "tax_composition": self.tax_composition.to_dict(),
            "transition": transition,
            "quality": {
                "score": self.quality.score,
                "level": self.quality.level.value,
                "criteria": {
                    "completeness": self.quality.completeness,
                    "consistency": self.quality.consistency,
                    "reasonableness": self.quality.reasonableness,
                    "diversity": self.quality.diversity,
                },
                "recommendations": list(self.quality.recommendations),
            },
            "observations": list(self.observations),
            "warnings": list(self.warnings),
            "metadata": {
                "processed_at": self.metadata.processed_at.isoformat(),
                "variants": list(self.metadata.variants),
                "apply_transition": self.metadata.options.apply_transition,
                "extractor_version": self.metadata.extractor_version,
            },
        }
        return _stringify_decimals(data)


class ConsolidationOrchestrator:
    """
    Builds a ConsolidatedDataset from per-variant parse results.

    Args:
        extractor: FinancialExtractor (default: one over the built-in layouts)
        transition_schedule: year -> new regime share in [0, 1]; when None
            the configured schedule is used
        config: ExtractorConfig (default: built-in defaults)
    """

    def __init__(
        self,
        extractor: Optional[FinancialExtractor] = None,
        transition_schedule: Optional[Callable[[int], float]] = None,
        config: Optional[ExtractorConfig] = None
    ):
        self.config = config or ExtractorConfig()
        self.extractor = extractor or FinancialExtractor()
        self.transition_schedule = transition_schedule or self.config.transition_percentage

    def consolidate(
        self,
        sources: SourcesArg,
        options: Optional[ExtractionOptions] = None
    ) -> ConsolidatedDataset:
        """
        Consolidate parse results into one dataset.

        Each source is extracted on its own and the outputs are summed, so
        supplying the same variant twice doubles the additive buckets.

        Args:
            sources: Mapping variant -> ParseResult, or iterable of
                (variant, ParseResult) pairs
            options: Extraction options

        Returns:
            ConsolidatedDataset

        Raises:
            TransitionScheduleError: If the schedule returns a share outside [0, 1]
        """
        options = options or ExtractionOptions()
        pairs = [(v, r) for v, r in iter_sources(sources) if r is not None]

        extraction = ExtractionResult()
        for variant, parse_result in pairs:
            extraction = extraction + self.extractor.extract_variant(variant, parse_result)

        company = self.resolve_company(pairs)
        transition = self.build_transition(options) if options.apply_transition else None

        tax_observations = self._tax_observations(extraction.tax_composition)
        financial_observations = self._financial_observations(extraction.financial_data)
        general_observations = self._general_observations(company, extraction)

        variants = tuple(dict.fromkeys(variant.value for variant, _ in pairs))
        quality = self.assess_quality(
            extraction,
            source_count=len(variants),
            tax_observations=len(tax_observations),
            financial_observations=len(financial_observations)
        )

        warnings = list(extraction.warnings)
        for variant, parse_result in pairs:
            warnings.extend(f"{variant.value}: {error}" for error in parse_result.errors)

        dataset = ConsolidatedDataset(
            company=company,
            financial_data=extraction.financial_data,
            tax_composition=extraction.tax_composition,
            transition=transition,
            quality=quality,
            metadata=ConsolidationMetadata(
                processed_at=datetime.now(),
                variants=variants,
                options=options
            ),
            observations=tuple(tax_observations + financial_observations + general_observations),
            warnings=tuple(warnings)
        )

        logger.info(
            f"Consolidated {len(pairs)} source(s) {list(variants)}: "
            f"quality {quality.score} ({quality.level.value}), "
            f"{len(dataset.observations)} observation(s)"
        )
        return dataset

    def consolidate_files(
        self,
        paths_by_variant: Mapping[Any, Path],
        options: Optional[ExtractionOptions] = None
    ) -> ConsolidatedDataset:
        """Parse files through an ImportSession, then consolidate them."""
        from spedtax.services.import_session import ImportSession

        session = ImportSession(config=self.config)
        results = session.parse_files(paths_by_variant)
        dataset = self.consolidate(results.successful(), options)

        failures = tuple(
            f"{result.variant.value}: {'; '.join(result.errors)}"
            for result in results.failed_files
        )
        if failures:
            dataset = replace(dataset, warnings=dataset.warnings + failures)
        return dataset

    def resolve_company(self, pairs: List[Tuple[FileVariant, ParseResult]]) -> CompanyInfo:
        """
        Resolve company attributes across sources.

        Priority FISCAL -> CONTRIBUTIONS -> ECF per attribute, tax regime
        ECF -> CONTRIBUTIONS; the first non-empty value wins, default "".
        """
        by_variant: Dict[FileVariant, List[ParseResult]] = {}
        for variant, parse_result in pairs:
            by_variant.setdefault(variant, []).append(parse_result)

        def first(attribute: str, priority) -> Tuple[str, str]:
            for variant in priority:
                for parse_result in by_variant.get(variant, []):
                    value = getattr(parse_result.company, attribute, "")
                    if value:
                        return value, variant.value
            return "", ""

        values = {}
        source = ""
        for attribute in COMPANY_ATTRIBUTES:
            value, origin = first(attribute, COMPANY_PRIORITY)
            values[attribute] = value
            if attribute in ("name", "tax_id") and not source:
                source = origin
        values["tax_regime"], _ = first("tax_regime", REGIME_PRIORITY)

        return CompanyInfo(source=source, **values)

    def build_transition(self, options: ExtractionOptions) -> TransitionSchedule:
        """
        Query the transition schedule for every requested year.

        Raises:
            TransitionScheduleError: If a share is not a number in [0, 1]
        """
        years = options.transition_years or self.config.transition_years
        shares = {}
        for year in years:
            value = self.transition_schedule(year)
            if isinstance(value, bool) or not isinstance(value, (Real, Decimal)) \
                    or not 0 <= value <= 1:
                raise TransitionScheduleError(year, value)
            shares[year] = TransitionShare(year=year, new_regime=float(value))
        return TransitionSchedule(shares=shares)

    def assess_quality(
        self,
        extraction: ExtractionResult,
        source_count: int,
        tax_observations: int = 0,
        financial_observations: int = 0
    ) -> DataQuality:
        """Score completeness, consistency, reasonableness and source diversity."""
        taxes = extraction.tax_composition
        financial = extraction.financial_data

        completeness = 0
        if taxes.gross_billing > ZERO:
            completeness += 10
        if taxes.net_taxes.total > ZERO:
            completeness += 10
        if financial.revenue.net > ZERO:
            completeness += 5

        consistency = 15
        if tax_observations > 3:
            consistency -= 5
        if financial_observations > 3:
            consistency -= 5
        consistency = max(0, consistency)

        band = self.config.quality
        reasonableness = 20
        rate = taxes.effective_rate
        if rate > band.max_effective_rate or rate < band.score_min_effective_rate:
            reasonableness -= 10
        if abs(financial.operating_margin) > band.max_operating_margin:
            reasonableness -= 5
        reasonableness = max(0, reasonableness)

        diversity = min(25, source_count * 8)

        score = completeness + consistency + reasonableness + diversity
        if score >= self.config.quality.high_score:
            level = QualityLevel.HIGH
        elif score >= self.config.quality.medium_score:
            level = QualityLevel.MEDIUM
        else:
            level = QualityLevel.LOW

        recommendations = []
        if completeness < 20:
            recommendations.append("Import more SPED variants to complete the data")
        if consistency < 15:
            recommendations.append("Check inconsistencies in the imported data")
        if reasonableness < 15:
            recommendations.append("Validate values that look out of the expected range")

        return DataQuality(
            completeness=completeness,
            consistency=consistency,
            reasonableness=reasonableness,
            diversity=diversity,
            level=level,
            recommendations=tuple(recommendations)
        )

    def _tax_observations(self, taxes: TaxComposition) -> List[str]:
        observations = []
        for name in TAX_NAMES:
            debit = getattr(taxes.debits, name)
            credit = getattr(taxes.credits, name)
            if debit > ZERO and credit == ZERO:
                observations.append(f"{name.upper()}: debits found without matching credits")
            if credit > debit:
                observations.append(f"{name.upper()}: credits exceed debits (possible credit balance)")
        if not taxes.is_empty and taxes.net_taxes.total <= ZERO:
            observations.append("Net taxes are zero, check the tax data")
        return observations

    def _financial_observations(self, financial: FinancialData) -> List[str]:
        observations = []
        if financial.costs.total > financial.revenue.net:
            observations.append("Costs exceed net revenue, check the income statement")
        return observations

    def _general_observations(self, company: CompanyInfo, extraction: ExtractionResult) -> List[str]:
        observations = []
        taxes = extraction.tax_composition
        gross = extraction.financial_data.revenue.gross

        if company.is_empty:
            observations.append("Company information not found in any source")

        if gross > ZERO and taxes.gross_billing > ZERO:
            divergence = abs(gross - taxes.gross_billing) / gross
            if divergence > self.config.tolerances.revenue_divergence:
                observations.append(
                    f"Gross revenue ({gross}) and billing ({taxes.gross_billing}) "
                    f"diverge by {divergence * 100:.1f}%"
                )

        if taxes.gross_billing > ZERO:
            rate = taxes.effective_rate
            quality = self.config.quality
            if rate < quality.min_effective_rate or rate > quality.max_effective_rate:
                observations.append(
                    f"Effective tax rate {rate:.2f}% outside the expected "
                    f"{quality.min_effective_rate}-{quality.max_effective_rate}% range"
                )
        return observations


def _stringify_decimals(value):
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, dict):
        return {k: _stringify_decimals(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_stringify_decimals(v) for v in value]
    return value
