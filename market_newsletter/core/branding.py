from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from .errors import ConfigurationError

DEFAULT_BRANDING_PATH = Path("configs/branding.yaml")


@dataclass(frozen=True)
class Branding:
    name: str = "Outrider Real Estate"
    tagline: str = "Monthly Market Newsletter"
    contact: str = ""
    logo: str | None = None


def _load_yaml(path: Path) -> dict:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid branding file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigurationError(f"Branding file {path} must contain a mapping")
    return data


def get_branding(path: Path | None = None) -> Branding:
    data = _load_yaml(path or DEFAULT_BRANDING_PATH)
    cfg = data.get("branding", {}) or {}
    default = Branding()
    return Branding(
        name=cfg.get("name") or default.name,
        tagline=cfg.get("tagline") or default.tagline,
        contact=cfg.get("contact") or default.contact,
        logo=cfg.get("logo") or default.logo,
    )
