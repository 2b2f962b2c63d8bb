"""Configuration loading and validation for spend sentinel."""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml

from spend_sentinel.models.category import Category, merge_keywords
from spend_sentinel.utils.logging_config import get_logger

logger = get_logger(__name__)

# Environment variable that overrides storage.data_dir
DATA_DIR_ENV = "SPEND_SENTINEL_DATA_DIR"


class ConfigError(Exception):
    """Exception raised for configuration errors."""

    pass


@dataclass
class ScoringConfig:
    """Thresholds used by alert classification and summaries.

    The composite risk score weights and the risk level thresholds are
    fixed and deliberately not part of this section.

    Attributes:
        micro_amount_threshold: Amounts below this count as micro-transactions.
        micro_count_threshold: Micro-transactions in 24h needed for an alert.
        spike_intensity_threshold: Spend intensity above this is a spike.
        duplicate_window_minutes: Max time apart for a duplicate payment.
        duplicate_amount_tolerance: Max amount difference for a duplicate payment.
        meal_reference_amount: Price of one meal used for cost comparisons.
        min_history_for_time_scoring: Records needed before unusual hours count.
    """

    micro_amount_threshold: float = 50.0
    micro_count_threshold: int = 5
    spike_intensity_threshold: float = 2.5
    duplicate_window_minutes: int = 60
    duplicate_amount_tolerance: float = 1.0
    meal_reference_amount: float = 50.0
    min_history_for_time_scoring: int = 10

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "ScoringConfig":
        """Create from dictionary."""
        defaults = cls()
        meal_reference = float(data.get("meal_reference_amount", defaults.meal_reference_amount))  # type: ignore[arg-type]
        if meal_reference <= 0:
            raise ConfigError(f"meal_reference_amount must be positive, got {meal_reference}")

        return cls(
            micro_amount_threshold=float(data.get("micro_amount_threshold", defaults.micro_amount_threshold)),  # type: ignore[arg-type]
            micro_count_threshold=int(data.get("micro_count_threshold", defaults.micro_count_threshold)),  # type: ignore[arg-type]
            spike_intensity_threshold=float(data.get("spike_intensity_threshold", defaults.spike_intensity_threshold)),  # type: ignore[arg-type]
            duplicate_window_minutes=int(data.get("duplicate_window_minutes", defaults.duplicate_window_minutes)),  # type: ignore[arg-type]
            duplicate_amount_tolerance=float(data.get("duplicate_amount_tolerance", defaults.duplicate_amount_tolerance)),  # type: ignore[arg-type]
            meal_reference_amount=meal_reference,
            min_history_for_time_scoring=int(data.get("min_history_for_time_scoring", defaults.min_history_for_time_scoring)),  # type: ignore[arg-type]
        )


@dataclass
class CategoryConfig:
    """Keyword table used for category auto-detection.

    Attributes:
        keywords: Keywords per category, built-in keywords first.
    """

    keywords: dict[Category, list[str]] = field(default_factory=merge_keywords)

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "CategoryConfig":
        """Create from dictionary, appending configured keywords."""
        raw_keywords = data.get("keywords") or {}
        if not isinstance(raw_keywords, dict):
            raise ConfigError(
                f"'categories.keywords' must be a mapping, got {type(raw_keywords).__name__}"
            )

        extra: dict[Category, list[str]] = {}
        for name, keywords in raw_keywords.items():
            category = Category.parse(str(name))
            if category is Category.MISCELLANEOUS and str(name).lower() != "miscellaneous":
                logger.warning(f"Unknown category '{name}' in keyword config, skipping")
                continue
            if not isinstance(keywords, list):
                raise ConfigError(f"Keywords for '{name}' must be a list")
            extra[category] = [str(k) for k in keywords]

        return cls(keywords=merge_keywords(extra))


@dataclass
class OutputConfig:
    """Configuration for output generation.

    Attributes:
        currency_symbol: Currency symbol for messages and exports.
        date_format: Timestamp format for exports.
        decimal_places: Number of decimal places in exports.
    """

    currency_symbol: str = "₹"
    date_format: str = "%Y-%m-%d %H:%M"
    decimal_places: int = 2

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "OutputConfig":
        """Create from dictionary."""
        return cls(
            currency_symbol=str(data.get("currency_symbol", "₹")),
            date_format=str(data.get("date_format", "%Y-%m-%d %H:%M")),
            decimal_places=int(data.get("decimal_places", 2)),  # type: ignore[arg-type]
        )


@dataclass
class LoggingConfig:
    """Configuration for logging.

    Attributes:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Path to log file.
    """

    level: str = "INFO"
    file: str = "spend_sentinel.log"

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "LoggingConfig":
        """Create from dictionary."""
        return cls(
            level=str(data.get("level", "INFO")),
            file=str(data.get("file", "spend_sentinel.log")),
        )


@dataclass
class StorageConfig:
    """Configuration for the local data store.

    Attributes:
        data_dir: Directory holding records, fingerprint and alerts.
    """

    data_dir: Path = field(default_factory=lambda: Path("data"))

    @classmethod
    def from_dict(cls, data: dict[str, object]) -> "StorageConfig":
        """Create from dictionary."""
        return cls(data_dir=Path(str(data.get("data_dir", "data"))))


@dataclass
class Config:
    """Main configuration container.

    Attributes:
        scoring: Alert classification thresholds.
        categories: Category keyword table.
        output: Output generation configuration.
        logging: Logging configuration.
        storage: Local data store configuration.
    """

    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    categories: CategoryConfig = field(default_factory=CategoryConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)


def load_yaml_file(path: Path) -> dict[str, object]:
    """Load a YAML file.

    Args:
        path: Path to the YAML file.

    Returns:
        Parsed YAML content.

    Raises:
        FileNotFoundError: If file doesn't exist.
        ConfigError: If the file is invalid YAML or the top level is not a mapping.
    """
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, encoding="utf-8") as f:
        try:
            content = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not content:
        return {}
    if not isinstance(content, dict):
        raise ConfigError(f"{path} must contain a mapping, got {type(content).__name__}")
    return content


def _section(data: dict[str, object], name: str) -> dict[str, object]:
    """Return a settings section, validating that it is a mapping."""
    section = data.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(f"'{name}' must be a mapping, got {type(section).__name__}")
    return section


def load_settings(path: Path) -> Config:
    """Load settings from settings.yaml.

    Args:
        path: Path to settings.yaml.

    Returns:
        Config populated from the file, defaults for missing sections.
    """
    data = load_yaml_file(path)

    return Config(
        scoring=ScoringConfig.from_dict(_section(data, "scoring")),
        categories=CategoryConfig.from_dict(_section(data, "categories")),
        output=OutputConfig.from_dict(_section(data, "output")),
        logging=LoggingConfig.from_dict(_section(data, "logging")),
        storage=StorageConfig.from_dict(_section(data, "storage")),
    )


def load_config(
    settings_path: Optional[Path] = None,
    config_dir: Optional[Path] = None,
) -> Config:
    """Load complete configuration.

    Args:
        settings_path: Path to settings.yaml (or None to use default).
        config_dir: Base config directory (default: ./config).

    Returns:
        Complete Config object.

    Raises:
        ConfigError: If the settings file is structurally invalid.
    """
    if config_dir is None:
        config_dir = Path("config")

    if settings_path is None:
        settings_path = config_dir / "settings.yaml"

    # Settings are optional - use defaults if missing
    if settings_path.exists():
        config = load_settings(settings_path)
        logger.info(f"Loaded settings from {settings_path}")
    else:
        config = Config()
        logger.warning(f"Settings file not found: {settings_path}, using defaults")

    data_dir_override = os.environ.get(DATA_DIR_ENV)
    if data_dir_override:
        config.storage.data_dir = Path(data_dir_override)
        logger.info(f"Using data directory from {DATA_DIR_ENV}: {data_dir_override}")

    return config
