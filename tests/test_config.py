"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest
import yaml

from invoice_ocr.utils.config import (
    AppConfig,
    OrchestratorConfig,
    PreprocessingConfig,
    QiniuConfig,
    TesseractConfig,
    ZhipuConfig,
    load_config,
)


@pytest.fixture(autouse=True)
def clear_secrets(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("ZHIPU_API_KEY", "QINIU_ACCESS_KEY", "QINIU_SECRET_KEY"):
        monkeypatch.delenv(name, raising=False)


class TestSectionDefaults:
    """Tests for per-section defaults."""

    def test_preprocessing(self) -> None:
        cfg = PreprocessingConfig()
        assert cfg.enabled is True
        assert cfg.deskew_enabled is False
        assert cfg.denoise_method == "bilateral"
        assert cfg.binarize_method == "otsu"

    def test_tesseract(self) -> None:
        cfg = TesseractConfig()
        assert cfg.lang == "chi_sim"
        assert cfg.psm == 6
        assert cfg.pool_size == 2
        assert cfg.tesseract_cmd is None

    def test_zhipu(self) -> None:
        cfg = ZhipuConfig()
        assert cfg.model == "glm-ocr"
        assert cfg.api_key is None
        assert cfg.api_url.endswith("/layout_parsing")

    def test_qiniu(self) -> None:
        cfg = QiniuConfig()
        assert cfg.access_key is None
        assert cfg.api_url == "https://api.qiniu.com/vs/vat/ocr"

    def test_orchestrator(self) -> None:
        cfg = OrchestratorConfig()
        assert cfg.priority == ["zhipu", "qiniu", "tesseract"]
        assert cfg.provider_timeout == 60.0
        assert cfg.min_confidence == 0.0

    def test_priority_lists_are_independent(self) -> None:
        first = OrchestratorConfig()
        first.priority.append("extra")
        assert OrchestratorConfig().priority == ["zhipu", "qiniu", "tesseract"]


class TestAppConfig:
    """Tests for the top-level configuration."""

    def test_defaults(self) -> None:
        cfg = AppConfig()
        assert cfg.log_level == "INFO"
        assert isinstance(cfg.tesseract, TesseractConfig)
        assert isinstance(cfg.orchestrator, OrchestratorConfig)

    def test_nested_override(self) -> None:
        cfg = AppConfig(tesseract={"lang": "chi_sim+eng"})
        assert cfg.tesseract.lang == "chi_sim+eng"


class TestLoadConfig:
    """Tests for loading configuration from YAML."""

    def test_load_from_yaml(self, tmp_path: Path) -> None:
        config_data = {
            "log_level": "DEBUG",
            "orchestrator": {"priority": ["tesseract"], "min_confidence": 0.3},
            "tesseract": {"pool_size": 4},
        }
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump(config_data))

        cfg = load_config(config_path)
        assert cfg.log_level == "DEBUG"
        assert cfg.orchestrator.priority == ["tesseract"]
        assert cfg.orchestrator.min_confidence == 0.3
        assert cfg.tesseract.pool_size == 4

    def test_missing_file_uses_defaults(self, tmp_path: Path) -> None:
        cfg = load_config(tmp_path / "nonexistent.yaml")
        assert cfg == AppConfig()

    def test_empty_file(self, tmp_path: Path) -> None:
        config_path = tmp_path / "config.yaml"
        config_path.write_text("")
        assert load_config(config_path) == AppConfig()

    def test_project_config(self, config_dir: Path) -> None:
        cfg = load_config(config_dir / "config.yaml")
        assert cfg.orchestrator.priority == ["zhipu", "qiniu", "tesseract"]
        assert cfg.tesseract.lang == "chi_sim"

    def test_secrets_from_environment(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZHIPU_API_KEY", "zk")
        monkeypatch.setenv("QINIU_ACCESS_KEY", "ak")
        monkeypatch.setenv("QINIU_SECRET_KEY", "sk")

        cfg = load_config(tmp_path / "nonexistent.yaml")

        assert cfg.zhipu.api_key == "zk"
        assert cfg.qiniu.access_key == "ak"
        assert cfg.qiniu.secret_key == "sk"

    def test_file_credentials_take_precedence(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZHIPU_API_KEY", "from-env")
        config_path = tmp_path / "config.yaml"
        config_path.write_text(yaml.dump({"zhipu": {"api_key": "from-file"}}))

        assert load_config(config_path).zhipu.api_key == "from-file"

    def test_empty_section_with_secret(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("ZHIPU_API_KEY", "zk")
        config_path = tmp_path / "config.yaml"
        config_path.write_text("zhipu:\n")

        assert load_config(config_path).zhipu.api_key == "zk"
