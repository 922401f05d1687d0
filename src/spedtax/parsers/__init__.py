"""
SPED parsers - tokenizing bookkeeping files into typed records.

Supported variants:
- SPED Fiscal (EFD ICMS/IPI)
- SPED Contribuições (EFD PIS/COFINS)
- ECF (Escrituração Contábil Fiscal)
"""

from spedtax.parsers.models import (
    FileVariant,
    Record,
    CompanyData,
    ParseStatistics,
    ParseResult,
)
from spedtax.parsers.layouts import Layout, LayoutRegistry, default_registry
from spedtax.parsers.detector import VariantDetector, DetectionResult, DetectionMethod
from spedtax.parsers.record_parser import SpedParser, tokenize_line

__all__ = [
    "FileVariant",
    "Record",
    "CompanyData",
    "ParseStatistics",
    "ParseResult",
    "Layout",
    "LayoutRegistry",
    "default_registry",
    "VariantDetector",
    "DetectionResult",
    "DetectionMethod",
    "SpedParser",
    "tokenize_line",
]
