"""Extractor configuration for spedtax.

Provides data-driven configuration with sensible defaults. Global and user
JSON files are deep-merged over DEFAULT_CONFIG.
"""

import copy
import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, List, Optional

from spedtax.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

GLOBAL_CONFIG_FILE = "defaults.json"
USER_CONFIG_FILE = "extractor.json"

# Default configuration (used when nothing is configured)
DEFAULT_CONFIG = {
    "$schema": "spedtax_extractor_v1",
    "version": "1.0",

    "tolerances": {
        "revenue_divergence": 0.05,  # 5% between billing and DRE revenue
        "min_value": 0.01,
        "error_margin": 0.001
    },

    # IVA Dual reference rates (%)
    "iva_rates": {
        "cbs": 8.8,
        "ibs": 17.7,
        "total": 26.5
    },

    # LC 214/2025 share of the new regime per year
    "transition_schedule": {
        "2026": 0.10,
        "2027": 0.25,
        "2028": 0.40,
        "2029": 0.55,
        "2030": 0.70,
        "2031": 0.85,
        "2032": 0.95,
        "2033": 1.00
    },

    "detection": {
        "default_variant": "sped-fiscal",
        "lines_to_scan": 100
    },

    "quality": {
        "high_score": 80,
        "medium_score": 60,
        "min_effective_rate": 5,
        "max_effective_rate": 50,
        # reasonableness score band, looser than the observation band
        "score_min_effective_rate": 2,
        "max_operating_margin": 50
    },

    "import": {
        "max_workers": 3,
        "encodings": ["utf-8", "cp1252", "latin-1"]
    }
}


@dataclass
class ToleranceConfig:
    """Tolerances used by consolidation checks."""
    revenue_divergence: Decimal = Decimal("0.05")
    min_value: Decimal = Decimal("0.01")
    error_margin: Decimal = Decimal("0.001")


@dataclass
class IVARates:
    """Reference IVA Dual rates in percent."""
    cbs: Decimal = Decimal("8.8")
    ibs: Decimal = Decimal("17.7")
    total: Decimal = Decimal("26.5")


@dataclass
class QualityConfig:
    """Thresholds for the data quality assessment."""
    high_score: int = 80
    medium_score: int = 60
    min_effective_rate: Decimal = Decimal("5")
    max_effective_rate: Decimal = Decimal("50")
    score_min_effective_rate: Decimal = Decimal("2")
    max_operating_margin: Decimal = Decimal("50")


@dataclass
class ImportConfig:
    """Configuration for file acquisition."""
    max_workers: int = 3
    encodings: List[str] = field(default_factory=lambda: ["utf-8", "cp1252", "latin-1"])


class ExtractorConfig:
    """
    Configuration for parsing, extraction and consolidation.

    Usage:
        config = ExtractorConfig.load(Path("config"))
        share = config.transition_percentage(2027)
    """

    def __init__(self, data: Optional[Dict[str, Any]] = None):
        """Initialize from configuration dictionary."""
        if data is None:
            data = copy.deepcopy(DEFAULT_CONFIG)
        self._raw = data

        try:
            tolerances = data.get("tolerances", {})
            self.tolerances = ToleranceConfig(
                revenue_divergence=_decimal(tolerances.get("revenue_divergence", 0.05)),
                min_value=_decimal(tolerances.get("min_value", 0.01)),
                error_margin=_decimal(tolerances.get("error_margin", 0.001))
            )

            rates = data.get("iva_rates", {})
            self.iva_rates = IVARates(
                cbs=_decimal(rates.get("cbs", 8.8)),
                ibs=_decimal(rates.get("ibs", 17.7)),
                total=_decimal(rates.get("total", 26.5))
            )

            schedule = data.get("transition_schedule", DEFAULT_CONFIG["transition_schedule"])
            self.transition_schedule = {
                int(year): float(share) for year, share in schedule.items()
            }

            detection = data.get("detection", {})
            self.default_variant = detection.get("default_variant", "sped-fiscal")
            self.lines_to_scan = int(detection.get("lines_to_scan", 100))

            quality = data.get("quality", {})
            self.quality = QualityConfig(
                high_score=int(quality.get("high_score", 80)),
                medium_score=int(quality.get("medium_score", 60)),
                min_effective_rate=_decimal(quality.get("min_effective_rate", 5)),
                max_effective_rate=_decimal(quality.get("max_effective_rate", 50)),
                score_min_effective_rate=_decimal(quality.get("score_min_effective_rate", 2)),
                max_operating_margin=_decimal(quality.get("max_operating_margin", 50))
            )

            import_cfg = data.get("import", {})
            self.import_settings = ImportConfig(
                max_workers=int(import_cfg.get("max_workers", 3)),
                encodings=list(import_cfg.get("encodings", ["utf-8", "cp1252", "latin-1"]))
            )
        except (TypeError, ValueError, AttributeError, InvalidOperation) as e:
            raise ConfigError(f"Invalid extractor configuration: {e}") from e

        for year, share in self.transition_schedule.items():
            if not 0.0 <= share <= 1.0:
                raise ConfigError(
                    f"Transition share for {year} must be in [0, 1], got {share}",
                    key="transition_schedule"
                )
        if self.import_settings.max_workers < 1:
            raise ConfigError("max_workers must be at least 1", key="import.max_workers")

    @property
    def raw(self) -> Dict[str, Any]:
        """Underlying configuration dictionary."""
        return self._raw

    @property
    def transition_years(self) -> List[int]:
        """Years covered by the configured transition schedule."""
        return sorted(self.transition_schedule)

    def transition_percentage(self, year: int) -> float:
        """
        Share of the new tax regime for a year.

        Years before the schedule are 0.0, years after it are the last
        configured share.
        """
        if year in self.transition_schedule:
            return self.transition_schedule[year]
        years = self.transition_years
        if not years or year < years[0]:
            return 0.0
        return self.transition_schedule[years[-1]]

    @classmethod
    def load(cls, config_dir: Path, global_config_dir: Optional[Path] = None) -> "ExtractorConfig":
        """
        Load configuration with fallback to defaults.

        Args:
            config_dir: Directory holding extractor.json
            global_config_dir: Directory holding defaults.json - optional

        Returns:
            ExtractorConfig instance
        """
        data = copy.deepcopy(DEFAULT_CONFIG)

        if global_config_dir:
            global_defaults = Path(global_config_dir) / GLOBAL_CONFIG_FILE
            if global_defaults.exists():
                try:
                    with open(global_defaults, encoding='utf-8') as f:
                        global_data = json.load(f)
                    data = cls._deep_merge(data, global_data)
                    logger.debug(f"Loaded global defaults from {global_defaults}")
                except (OSError, json.JSONDecodeError) as e:
                    logger.warning(f"Failed to load global defaults: {e}")

        user_config = Path(config_dir) / USER_CONFIG_FILE
        if user_config.exists():
            try:
                with open(user_config, encoding='utf-8') as f:
                    user_data = json.load(f)
                data = cls._deep_merge(data, user_data)
                logger.debug(f"Loaded extractor config from {user_config}")
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to load extractor config: {e}")

        return cls(data)

    @staticmethod
    def _deep_merge(base: Dict, override: Dict) -> Dict:
        """Deep merge two dictionaries, override takes precedence."""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = ExtractorConfig._deep_merge(result[key], value)
            else:
                result[key] = value
        return result

    def save(self, config_dir: Path) -> Path:
        """Save current configuration to config_dir/extractor.json."""
        config_dir = Path(config_dir)
        config_dir.mkdir(parents=True, exist_ok=True)
        config_file = config_dir / USER_CONFIG_FILE

        with open(config_file, 'w', encoding='utf-8') as f:
            json.dump(self._raw, f, indent=2)

        logger.info(f"Saved extractor config to {config_file}")
        return config_file


def _decimal(value) -> Decimal:
    return Decimal(str(value))
