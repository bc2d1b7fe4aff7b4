"""Tests for settings, branding and logging configuration."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from market_newsletter.core import logging_config
from market_newsletter.core.branding import Branding, get_branding
from market_newsletter.core.config import get_settings
from market_newsletter.core.constants import IMAGE_LOAD_TIMEOUT
from market_newsletter.core.errors import ConfigurationError
from market_newsletter.core.models import Period
from market_newsletter.core.enums import ListingStatus, Region

ENV_KEYS = (
    "MNL_API_URL",
    "API_URL",
    "MNL_API_TOKEN",
    "ADMIN_TOKEN",
    "MNL_REQUEST_TIMEOUT",
    "MNL_OUTPUT_DIR",
    "MNL_LOGO",
    "MNL_IMAGE_TIMEOUT",
)


@pytest.fixture(autouse=True)
def clean_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    return tmp_path


class TestSettings:
    def test_defaults(self) -> None:
        settings = get_settings()
        assert settings.api_base_url is None
        assert settings.api_token is None
        assert settings.request_timeout == 30.0
        assert settings.output_dir == "newsletters"
        assert settings.image_timeout == IMAGE_LOAD_TIMEOUT

    def test_prefixed_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MNL_API_URL", "http://localhost:3001/api/")
        monkeypatch.setenv("MNL_API_TOKEN", "token-1")
        monkeypatch.setenv("MNL_IMAGE_TIMEOUT", "2.5")
        settings = get_settings()
        assert settings.api_base_url == "http://localhost:3001/api"
        assert settings.api_token == "token-1"
        assert settings.image_timeout == 2.5

    def test_fallback_names(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("API_URL", "http://fallback.test/api")
        monkeypatch.setenv("ADMIN_TOKEN", "admin")
        settings = get_settings()
        assert settings.api_base_url == "http://fallback.test/api"
        assert settings.api_token == "admin"

    def test_env_file(self, clean_env: Path) -> None:
        (clean_env / ".env").write_text(
            "# local settings\nMNL_API_URL=\"http://dotenv.test/api\"\nMNL_OUTPUT_DIR=out\n",
            encoding="utf-8",
        )
        settings = get_settings()
        assert settings.api_base_url == "http://dotenv.test/api"
        assert settings.output_dir == "out"

    def test_process_env_beats_env_file(self, clean_env: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        (clean_env / ".env").write_text("MNL_API_URL=http://dotenv.test/api\n", encoding="utf-8")
        monkeypatch.setenv("MNL_API_URL", "http://process.test/api")
        assert get_settings().api_base_url == "http://process.test/api"

    @pytest.mark.parametrize("value", ["soon", "0", "-1"])
    def test_invalid_timeout(self, monkeypatch: pytest.MonkeyPatch, value: str) -> None:
        monkeypatch.setenv("MNL_REQUEST_TIMEOUT", value)
        with pytest.raises(ConfigurationError, match="MNL_REQUEST_TIMEOUT"):
            get_settings()


class TestBranding:
    def test_defaults_without_file(self, clean_env: Path) -> None:
        assert get_branding(clean_env / "missing.yaml") == Branding()

    def test_reads_yaml(self, clean_env: Path) -> None:
        path = clean_env / "branding.yaml"
        path.write_text(
            "branding:\n  name: High Desert Homes\n  contact: hello@example.com\n  logo: assets/logo.png\n",
            encoding="utf-8",
        )
        branding = get_branding(path)
        assert branding.name == "High Desert Homes"
        assert branding.tagline == Branding().tagline
        assert branding.contact == "hello@example.com"
        assert branding.logo == "assets/logo.png"

    def test_invalid_yaml(self, clean_env: Path) -> None:
        path = clean_env / "branding.yaml"
        path.write_text("branding: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="Invalid branding file"):
            get_branding(path)

    def test_non_mapping(self, clean_env: Path) -> None:
        path = clean_env / "branding.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")
        with pytest.raises(ConfigurationError, match="must contain a mapping"):
            get_branding(path)

    def test_shipped_branding_file_loads(self) -> None:
        shipped = Path(__file__).resolve().parent.parent / "configs" / "branding.yaml"
        assert get_branding(shipped).name


def test_setup_logging_creates_log_dir(clean_env: Path) -> None:
    logging_config.setup_logging(json_output=True, log_level="warning")
    try:
        assert (clean_env / logging_config.LOG_DIR).is_dir()
        assert logging.getLogger("market_newsletter").level == logging.WARNING
    finally:
        logging_config.setup_logging()


def test_setup_logging_custom_dir_and_quiet_renderers(clean_env: Path) -> None:
    log_dir = clean_env / "var" / "log"
    logging_config.setup_logging(log_level="debug", log_dir=str(log_dir))
    try:
        assert log_dir.is_dir()
        handlers = logging.getLogger("market_newsletter").handlers
        files = [h.baseFilename for h in handlers if isinstance(h, logging.FileHandler)]
        assert files == [str(log_dir / logging_config.LOG_FILE)]
        for name in logging_config.QUIET_LOGGERS:
            assert logging.getLogger(name).level == logging.WARNING
    finally:
        logging_config.setup_logging()


class TestDomainTypes:
    @pytest.mark.parametrize(("month", "year"), [(0, 2024), (13, 2024), (3, 2019), (3, 2051)])
    def test_invalid_period(self, month: int, year: int) -> None:
        with pytest.raises(ValueError):
            Period(month=month, year=year)

    def test_region_parse(self) -> None:
        assert Region.parse("Mountain-Center") is Region.MOUNTAIN_CENTER
        assert Region.MOUNTAIN_CENTER.display_name == "Mountain Center"
        with pytest.raises(ValueError, match="Must be one of"):
            Region.parse("hemet")

    def test_listing_status_parse(self) -> None:
        assert ListingStatus.parse("Canceled") is ListingStatus.CANCELLED
        assert ListingStatus.parse(None) is ListingStatus.UNKNOWN
        assert ListingStatus.parse("coming soon") is ListingStatus.UNKNOWN
