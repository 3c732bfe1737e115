"""Configuration management for the invoice OCR service.

Loads a YAML file into validated pydantic models. Provider credentials
are never stored in the file; they are read from the environment when
the file leaves them unset.
"""

import logging
import os
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path("configs/config.yaml")


class PreprocessingConfig(BaseModel):
    """Image cleanup applied before local recognition."""

    enabled: bool = True
    upscale_min_width: int = 1600
    deskew_enabled: bool = False
    denoise_method: str = "bilateral"
    binarize_method: str = "otsu"


class TesseractConfig(BaseModel):
    """Local Tesseract recognition engine settings."""

    enabled: bool = True
    tesseract_cmd: str | None = None
    lang: str = "chi_sim"
    psm: int = 6
    pool_size: int = 2
    timeout: float = 30.0


class ZhipuConfig(BaseModel):
    """Zhipu GLM-OCR layout parsing endpoint."""

    enabled: bool = True
    api_key: str | None = None
    api_url: str = "https://open.bigmodel.cn/api/paas/v4/layout_parsing"
    model: str = "glm-ocr"


class QiniuConfig(BaseModel):
    """Qiniu VAT invoice recognition endpoint."""

    enabled: bool = True
    access_key: str | None = None
    secret_key: str | None = None
    api_url: str = "https://api.qiniu.com/vs/vat/ocr"


class OrchestratorConfig(BaseModel):
    """Provider fallback order and time bounds."""

    priority: list[str] = Field(default_factory=lambda: ["zhipu", "qiniu", "tesseract"])
    provider_timeout: float = 60.0
    http_timeout: float = 30.0
    min_confidence: float = 0.0


class AppConfig(BaseModel):
    """Top-level application configuration."""

    preprocessing: PreprocessingConfig = Field(default_factory=PreprocessingConfig)
    tesseract: TesseractConfig = Field(default_factory=TesseractConfig)
    zhipu: ZhipuConfig = Field(default_factory=ZhipuConfig)
    qiniu: QiniuConfig = Field(default_factory=QiniuConfig)
    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    log_level: str = "INFO"


# (section, field) -> environment variable
_ENV_SECRETS: dict[tuple[str, str], str] = {
    ("zhipu", "api_key"): "ZHIPU_API_KEY",
    ("qiniu", "access_key"): "QINIU_ACCESS_KEY",
    ("qiniu", "secret_key"): "QINIU_SECRET_KEY",
}


def _apply_env_secrets(raw: dict) -> dict:
    """Fill unset credential fields from the environment.

    Args:
        raw: Parsed YAML mapping, possibly empty.

    Returns:
        The same mapping with credentials filled in where available.
    """
    for (section, key), env_name in _ENV_SECRETS.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        section_data = raw.setdefault(section, {}) or {}
        raw[section] = section_data
        if not section_data.get(key):
            section_data[key] = value
    return raw


def load_config(path: Path | None = None) -> AppConfig:
    """Load configuration from a YAML file.

    Args:
        path: Path to the YAML configuration file.
            Defaults to configs/config.yaml.

    Returns:
        Validated application configuration.
    """
    if path is None:
        path = DEFAULT_CONFIG_PATH

    raw: dict = {}
    if path.exists():
        logger.info("Loading configuration from %s", path)
        with open(path, encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    else:
        logger.info("No config file found at %s, using defaults", path)

    return AppConfig(**_apply_env_secrets(raw))
