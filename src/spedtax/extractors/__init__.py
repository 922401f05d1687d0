"""
Extractors - financial and tax data from parsed SPED files.

Provides:
- FinancialExtractor: per-variant extraction rules over the layout registry
- ConsolidationOrchestrator: merges sources into a ConsolidatedDataset
"""

from spedtax.extractors.models import (
    Revenue,
    Costs,
    Expenses,
    FinancialData,
    TaxBuckets,
    TaxComposition,
    ExtractionResult,
)
from spedtax.extractors.classification import AccountGroup, classify_account
from spedtax.extractors.financial import FinancialExtractor, ExtractionOptions
from spedtax.extractors.consolidation import (
    ConsolidationOrchestrator,
    ConsolidatedDataset,
    CompanyInfo,
    TransitionShare,
    TransitionSchedule,
    DataQuality,
    QualityLevel,
    ConsolidationMetadata,
)

__all__ = [
    "Revenue",
    "Costs",
    "Expenses",
    "FinancialData",
    "TaxBuckets",
    "TaxComposition",
    "ExtractionResult",
    "AccountGroup",
    "classify_account",
    "FinancialExtractor",
    "ExtractionOptions",
    "ConsolidationOrchestrator",
    "ConsolidatedDataset",
    "CompanyInfo",
    "TransitionShare",
    "TransitionSchedule",
    "DataQuality",
    "QualityLevel",
    "ConsolidationMetadata",
]
