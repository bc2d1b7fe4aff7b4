from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .constants import IMAGE_LOAD_TIMEOUT
from .errors import ConfigurationError


@dataclass
class Settings:
    api_base_url: str | None
    api_token: str | None
    request_timeout: float = 30.0
    output_dir: str = "newsletters"
    logo_source: str | None = None
    image_timeout: float = IMAGE_LOAD_TIMEOUT


def _read_env_file() -> dict[str, str]:
    """Load minimal .env to support MNL_* keys if not in the environment.

    We intentionally do not overwrite existing os.environ values.
    """
    env_path = Path.cwd() / ".env"
    env: dict[str, str] = {}
    if not env_path.exists():
        return env
    try:
        text = env_path.read_text(encoding="utf-8")
    except OSError:
        return {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#"):
            continue
        if "=" not in line:
            continue
        k, v = line.split("=", 1)
        env[k.strip()] = v.strip().strip('"').strip("'")
    return env


def _get_env(
    name: str,
    fallback_names: list[str] | None = None,
    env_file: dict[str, str] | None = None,
) -> str | None:
    # Priority: process env -> .env -> fallback names
    val = os.getenv(name)
    if val:
        return val
    if env_file and name in env_file:
        return env_file[name]
    if fallback_names:
        for fb in fallback_names:
            v = os.getenv(fb)
            if v:
                return v
            if env_file and fb in env_file:
                return env_file[fb]
    return None


def _get_float(name: str, raw: str | None, default: float) -> float:
    if raw is None:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got '{raw}'") from None
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {value}")
    return value


def get_settings() -> Settings:
    env_file = _read_env_file()
    # Support MNL_* prefixed variables with non-prefixed fallbacks
    api_url = _get_env("MNL_API_URL", ["API_URL"], env_file)
    token = _get_env("MNL_API_TOKEN", ["ADMIN_TOKEN"], env_file)
    timeout = _get_env("MNL_REQUEST_TIMEOUT", None, env_file)
    output_dir = _get_env("MNL_OUTPUT_DIR", None, env_file)
    logo = _get_env("MNL_LOGO", None, env_file)
    image_timeout = _get_env("MNL_IMAGE_TIMEOUT", None, env_file)
    return Settings(
        api_base_url=api_url.rstrip("/") if api_url else None,
        api_token=token,
        request_timeout=_get_float("MNL_REQUEST_TIMEOUT", timeout, 30.0),
        output_dir=output_dir or "newsletters",
        logo_source=logo,
        image_timeout=_get_float("MNL_IMAGE_TIMEOUT", image_timeout, IMAGE_LOAD_TIMEOUT),
    )
