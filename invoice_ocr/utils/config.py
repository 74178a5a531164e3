"""Configuration management for the invoice analyzer.

Loads and validates YAML configuration with defaults for preprocessing,
OCR, field extraction, retry and preflight settings.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, model_validator

logger = logging.getLogger(__name__)

DEFAULT_CHAR_WHITELIST = (
    "0123456789"
    "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz"
    "ÀÁÂÃÄÅÇÈÉÊËÌÍÎÏÑÒÓÔÕÖÙÚÛÜÝàáâãäåçèéêëìíîïñòóôõöùúûüÿ"
    "€.,/()-:;&'%"
)

DEFAULT_KNOWN_BRANDS = [
    "McDonald's",
    "McDo",
    "Quick",
    "Burger King",
    "KFC",
    "Subway",
    "Carrefour",
    "Leclerc",
    "Auchan",
    "Intermarché",
    "Casino",
    "Monoprix",
    "Franprix",
    "Lidl",
    "Aldi",
    "Decathlon",
    "Fnac",
    "Darty",
    "Leroy Merlin",
    "Castorama",
    "Ikea",
    "Amazon",
    "Apple",
    "Google",
    "Microsoft",
    "Orange",
    "SFR",
    "Bouygues",
    "EDF",
    "Engie",
    "SNCF",
    "Air France",
    "Uber",
    "Shell",
    "Esso",
    "BP",
    "Agip",
    "Avia",
]


class PreprocessingConfig(BaseModel):
    """Configuration for rasterization and binarization."""

    pdf_render_scale: float = Field(default=2.0, gt=0)
    max_width: int = Field(default=1600, gt=0)
    max_height: int = Field(default=1200, gt=0)
    binarize_threshold: int = Field(default=128, ge=0, le=255)
    threshold_method: str = "fixed"


class OCRConfig(BaseModel):
    """Configuration for the Tesseract OCR engine."""

    tesseract_cmd: str | None = None
    languages: list[str] = Field(default_factory=lambda: ["fra", "eng"])
    psm: int = 3
    oem: int = 1
    char_whitelist: str = DEFAULT_CHAR_WHITELIST
    preserve_interword_spaces: bool = True
    timeout_seconds: float | None = 60.0


class ExtractionConfig(BaseModel):
    """Thresholds and vocabularies used by the field extractors."""

    amount_ceiling: float = Field(default=10_000, gt=0)
    typical_amount_min: float = 5
    typical_amount_max: float = 1000
    date_year_min: int = 2020
    date_year_max: int = 2030
    recent_date_days: int = Field(default=365, ge=0)
    known_brands: list[str] = Field(default_factory=lambda: list(DEFAULT_KNOWN_BRANDS))

    @model_validator(mode="after")
    def _check_ranges(self) -> "ExtractionConfig":
        if self.date_year_min > self.date_year_max:
            raise ValueError("date_year_min must not exceed date_year_max")
        if self.typical_amount_min > self.typical_amount_max:
            raise ValueError("typical_amount_min must not exceed typical_amount_max")
        return self


class RetryConfig(BaseModel):
    """Bounded retry policy for recoverable failures."""

    max_attempts: int = Field(default=3, ge=1)
    backoff_seconds: float = Field(default=1.0, ge=0)


class PreflightConfig(BaseModel):
    """Checks applied before a document enters the pipeline."""

    max_file_size_bytes: int = Field(default=50 * 1024 * 1024, gt=0)


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    ocr: OCRConfig = Field(default_factory=OCRConfig)
    extraction: ExtractionConfig = Field(default_factory=ExtractionConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    preflight: PreflightConfig = Field(default_factory=PreflightConfig)
    log_level: str = "INFO"


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = Path("configs/config.yaml")

    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return AppConfig(**raw)

    logger.info("No config file found at %s, using defaults", path)
    return AppConfig()
