"""Reports - export of consolidated SPED data."""

from spedtax.reports.consolidation_report import ConsolidationReport

__all__ = ["ConsolidationReport"]
