"""Layered configuration loader for wpbabel."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping, Optional, Sequence

import yaml
from dotenv import dotenv_values
from pydantic import BaseModel, Field, ValidationError, model_validator

from .errors import TranslationProviderConfigurationError
from .providers import DEFAULT_GEMINI_API_URL, DEFAULT_TIMEOUT
from .segmenter import DEFAULT_BATCH_BUDGET

APP_NAME = "wpbabel"
CONFIG_FILENAME = "config.yaml"


class WpBabelConfig(BaseModel):
    """Schema describing all supported configuration options."""

    LLM_PROVIDER: Literal["gemini", "openai", "azure_openai", "echo"] = Field(
        default="gemini",
        description="Translation backend selection.",
    )
    GEMINI_API_KEY: Optional[str] = Field(default=None, repr=False)
    GEMINI_API_URL: str = Field(default=DEFAULT_GEMINI_API_URL)
    OPENAI_API_KEY: Optional[str] = Field(default=None, repr=False)
    AZURE_OPENAI_API_KEY: Optional[str] = Field(default=None, repr=False)
    AZURE_OPENAI_ENDPOINT: Optional[str] = Field(default=None)
    AZURE_OPENAI_API_VERSION: Optional[str] = Field(default=None)
    AZURE_OPENAI_DEPLOYMENT_NAME: Optional[str] = Field(default=None)

    WPBABEL_MODEL: Optional[str] = Field(default=None)
    WPBABEL_BATCH_BUDGET: int = Field(default=DEFAULT_BATCH_BUDGET, gt=0)
    WPBABEL_REQUEST_TIMEOUT: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    WPBABEL_MAX_RETRIES: int = Field(default=3, ge=0)
    WPBABEL_PROVIDER_DEBUG: bool = Field(default=False)
    WPBABEL_LOG_LEVEL: str = Field(default="INFO")

    WP_SITE_URL: Optional[str] = Field(default=None)
    WP_USERNAME: Optional[str] = Field(default=None)
    WP_APP_PASSWORD: Optional[str] = Field(default=None, repr=False)

    @model_validator(mode="before")
    @classmethod
    def _normalise_provider(cls, data: Any) -> Any:
        if isinstance(data, dict):
            raw_value = data.get("LLM_PROVIDER")
            if isinstance(raw_value, str):
                normalized = raw_value.strip().lower().replace("-", "_")
                synonyms = {
                    "azure_open_ai": "azure_openai",
                    "azureopenai": "azure_openai",
                    "google": "gemini",
                }
                data["LLM_PROVIDER"] = synonyms.get(normalized, normalized)
        return data

    def wordpress_configured(self) -> bool:
        return bool(self.WP_SITE_URL and self.WP_USERNAME and self.WP_APP_PASSWORD)


def _config_paths(app_dir: Path) -> list[Path]:
    """YAML files in increasing order of precedence."""

    home = Path(os.environ.get("XDG_CONFIG_HOME") or Path.home() / ".config")
    return [home / APP_NAME / CONFIG_FILENAME, app_dir / CONFIG_FILENAME]


def _load_yaml_layers(app_dir: Path) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for path in _config_paths(app_dir):
        if not path.is_file():
            continue
        try:
            parsed = yaml.safe_load(path.read_text(encoding="utf-8"))
        except (OSError, yaml.YAMLError) as exc:
            raise TranslationProviderConfigurationError(
                f"Configuration files could not be read: {path}: {exc}"
            ) from exc
        if parsed is None:
            continue
        if not isinstance(parsed, Mapping):
            raise TranslationProviderConfigurationError(
                f"Invalid configuration file {path}: expected a mapping at the root."
            )
        result.update(parsed)
    return result


def _merge_env_sources(target: dict[str, Any], *, app_dir: Path) -> None:
    """Merge .env and process environment variables into the target mapping."""

    allowed = set(WpBabelConfig.model_fields)

    def merge_values(values: Mapping[str, Optional[str]]) -> None:
        for key, value in sorted(values.items()):
            if value is None or key not in allowed:
                continue
            target[key] = value

    dotenv_path = app_dir / ".env"
    if dotenv_path.exists():
        merge_values(dotenv_values(dotenv_path))

    merge_values(dict(os.environ))


def _validate_provider_settings(settings: WpBabelConfig) -> None:
    provider = settings.LLM_PROVIDER
    errors: list[str] = []

    if provider == "gemini":
        if not settings.GEMINI_API_KEY:
            errors.append("GEMINI_API_KEY is required when LLM_PROVIDER is 'gemini'.")
    elif provider == "openai":
        if not settings.OPENAI_API_KEY:
            errors.append("OPENAI_API_KEY is required when LLM_PROVIDER is 'openai'.")
    elif provider == "azure_openai":
        missing = [
            name
            for name, value in {
                "AZURE_OPENAI_API_KEY": settings.AZURE_OPENAI_API_KEY,
                "AZURE_OPENAI_ENDPOINT": settings.AZURE_OPENAI_ENDPOINT,
                "AZURE_OPENAI_API_VERSION": settings.AZURE_OPENAI_API_VERSION,
                "AZURE_OPENAI_DEPLOYMENT_NAME": settings.AZURE_OPENAI_DEPLOYMENT_NAME,
            }.items()
            if not value
        ]
        if missing:
            errors.append(
                "The following Azure OpenAI settings must be provided when "
                f"LLM_PROVIDER is 'azure_openai': {', '.join(missing)}."
            )

    if errors:
        bullet_list = "\n".join(f"- {message}" for message in errors)
        raise TranslationProviderConfigurationError(
            "Configuration validation errors detected:\n" + bullet_list
        )


def _format_validation_errors(entries: Sequence[Mapping[str, Any]]) -> str:
    details: list[str] = []
    for entry in entries:
        location = ".".join(str(part) for part in entry.get("loc") or () if part != "")
        message = str(entry.get("msg") or "Invalid value")
        prefix = f"{location}: " if location else ""
        details.append(f"- {prefix}{message}")
    return "Configuration validation errors detected:\n" + "\n".join(details)


def load_settings(
    app_dir: Path | None = None,
    *,
    provider: Optional[str] = None,
) -> WpBabelConfig:
    """Read every configuration layer and return validated settings.

    ``provider`` overrides ``LLM_PROVIDER`` from every layer before the
    provider credentials are checked.
    """

    base_dir = app_dir or Path.cwd()
    combined = _load_yaml_layers(base_dir)
    _merge_env_sources(combined, app_dir=base_dir)
    if provider:
        combined["LLM_PROVIDER"] = provider
    try:
        settings = WpBabelConfig.model_validate(combined)
    except ValidationError as exc:
        raise TranslationProviderConfigurationError(
            _format_validation_errors(exc.errors())
        ) from exc
    _validate_provider_settings(settings)
    return settings


@lru_cache(maxsize=4)
def _cached_settings(app_dir: Path | None, provider: Optional[str]) -> WpBabelConfig:
    return load_settings(app_dir, provider=provider)


def get_settings(
    app_dir: Path | None = None,
    *,
    provider: Optional[str] = None,
) -> WpBabelConfig:
    """Return the validated settings, loading them once per process."""

    return _cached_settings(app_dir, provider)


def reset_settings_cache() -> None:
    _cached_settings.cache_clear()
