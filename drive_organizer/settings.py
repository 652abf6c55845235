"""Run configuration.

A single frozen :class:`OrganizerSettings` value is resolved once by the CLI and
handed to every component; nothing reads configuration from globals.
Precedence: explicit overrides (CLI flags) > environment (``DORGANIZER_*``) >
YAML config file > defaults.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Literal

import typer
import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".config" / "driver-organizer"
API_KEY_FILE = "gemini_api_key"


class OrganizerSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="DORGANIZER_", frozen=True)

    credentials_path: Path = Field(
        CONFIG_DIR / "credentials.json",
        description="OAuth client secrets downloaded from the Google Cloud Console.",
    )
    token_path: Path = Field(
        CONFIG_DIR / "token.json",
        description="Where the authorized user token is cached.",
    )
    gemini_api_key: str = ""
    gemini_model: str = "gemini-2.0-flash"
    backup_folder: str = Field(
        "backup",
        description="Backup container path, may be nested with '/'.",
    )
    batch_size: int = Field(20, ge=1)
    max_cost: float = Field(5.0, ge=0, description="Estimated AI spend limit in USD.")
    input_price_per_million: float = Field(0.10, ge=0)
    output_price_per_million: float = Field(0.40, ge=0)
    language: str = Field(
        "English",
        description="Language the AI is asked to name folders in.",
    )
    log_level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    log_dir: Path = Path("./logs")
    dry_run: bool = False
    resume: bool = False


def _load_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must be a mapping: {path}")
    return data


def find_config_file(config_file: Path | None = None) -> Path | None:
    if config_file is not None:
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_file}")
        return config_file

    for candidate in (CONFIG_DIR / "config.yaml", Path("config.yaml")):
        if candidate.exists():
            return candidate
    return None


def load_settings(config_file: Path | None = None, **overrides: Any) -> OrganizerSettings:
    """Resolve settings from the config file, the environment and overrides.

    Overrides whose value is None are treated as "not given".
    """
    path = find_config_file(config_file)
    file_values = _load_yaml(path) if path else {}
    if path:
        logger.debug(f"Loaded config file {path}")

    # Fields set from the environment must win over the file
    from_env = OrganizerSettings().model_fields_set
    values = {k: v for k, v in file_values.items() if k not in from_env}
    values.update({k: v for k, v in overrides.items() if v is not None})

    return OrganizerSettings(**values)


def api_key_path(config_dir: Path = CONFIG_DIR) -> Path:
    return config_dir / API_KEY_FILE


def load_api_key(config_dir: Path = CONFIG_DIR) -> str | None:
    path = api_key_path(config_dir)
    if not path.exists():
        return None
    key = path.read_text(encoding="utf-8").strip()
    return key or None


def save_api_key(key: str, config_dir: Path = CONFIG_DIR) -> Path:
    config_dir.mkdir(parents=True, exist_ok=True)
    os.chmod(config_dir, 0o700)
    path = api_key_path(config_dir)
    path.write_text(key.strip(), encoding="utf-8")
    os.chmod(path, 0o600)
    return path


def ensure_api_key(
    settings: OrganizerSettings, config_dir: Path = CONFIG_DIR
) -> OrganizerSettings:
    """Return settings carrying a Gemini API key, prompting for one if needed."""
    if settings.gemini_api_key:
        return settings

    saved = load_api_key(config_dir)
    if saved:
        typer.echo("🔑 Gemini API key loaded.")
        return settings.model_copy(update={"gemini_api_key": saved})

    typer.echo("🔑 Gemini API key setup")
    typer.echo("  Get a key at: https://aistudio.google.com/apikey")
    key = typer.prompt("  Paste your API key", hide_input=True, default="", show_default=False)
    key = key.strip()
    if not key:
        raise ValueError("API key cannot be empty")

    try:
        path = save_api_key(key, config_dir)
        typer.echo(f"  ✓ API key saved to: {path}")
    except OSError as e:
        logger.warning(f"Could not save API key to disk: {e}")

    return settings.model_copy(update={"gemini_api_key": key})
