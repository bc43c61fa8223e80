"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from db.config import load_env_files

DEFAULT_RECORD_OBJECT_TYPE = "tc9_et__Interpretation_Rule__c"


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


def _get_str_env(name: str, default: str) -> str:
    """
    Read a string from environment variables with fallback.
    """

    _load_env_once()
    value = os.getenv(name)
    if value is None:
        return default
    stripped = value.strip()
    return stripped if stripped else default


def _project_root() -> Path:
    return Path(__file__).resolve().parents[1]


@dataclass(frozen=True)
class OrgAPISettings:
    """
    HTTP behaviour for calls against connected org REST APIs.
    """

    api_version: str = "60.0"
    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_initial_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    rate_limit_per_second: float = 10.0
    query_chunk_size: int = 200


@dataclass(frozen=True)
class MigrationValidationSettings:
    """
    Runtime settings for pre-migration validation.
    """

    large_batch_threshold: int = 200
    default_object_api_name: str = DEFAULT_RECORD_OBJECT_TYPE
    engine_timeout_seconds: float = 120.0
    reconnect_url: str = "/orgs"


@dataclass(frozen=True)
class TemplateRegistrySettings:
    """
    Location of the JSON migration template definitions.
    """

    templates_path: str


@lru_cache(maxsize=1)
def get_org_api_settings() -> OrgAPISettings:
    """
    Return cached org API settings from environment variables.
    """

    return OrgAPISettings(
        api_version=_get_str_env("ORG_API_VERSION", "60.0"),
        timeout_seconds=max(1.0, _get_float_env("ORG_HTTP_TIMEOUT_SECONDS", 30.0)),
        max_retries=max(0, _get_int_env("ORG_HTTP_MAX_RETRIES", 3)),
        backoff_initial_seconds=max(0.1, _get_float_env("ORG_HTTP_BACKOFF_INITIAL_SECONDS", 0.5)),
        backoff_multiplier=max(1.0, _get_float_env("ORG_HTTP_BACKOFF_MULTIPLIER", 2.0)),
        rate_limit_per_second=max(0.1, _get_float_env("ORG_HTTP_RATE_LIMIT_PER_SECOND", 10.0)),
        query_chunk_size=min(500, max(1, _get_int_env("ORG_QUERY_CHUNK_SIZE", 200))),
    )


@lru_cache(maxsize=1)
def get_migration_validation_settings() -> MigrationValidationSettings:
    """
    Return cached validation settings from environment variables.
    """

    return MigrationValidationSettings(
        large_batch_threshold=max(1, _get_int_env("LARGE_BATCH_THRESHOLD", 200)),
        default_object_api_name=_get_str_env("DEFAULT_RECORD_OBJECT_TYPE", DEFAULT_RECORD_OBJECT_TYPE),
        engine_timeout_seconds=max(1.0, _get_float_env("VALIDATION_ENGINE_TIMEOUT_SECONDS", 120.0)),
        reconnect_url=_get_str_env("ORG_RECONNECT_URL", "/orgs"),
    )


@lru_cache(maxsize=1)
def get_template_registry_settings() -> TemplateRegistrySettings:
    """
    Return cached template registry settings; relative paths resolve from the project root.
    """

    raw_path = _get_str_env("MIGRATION_TEMPLATES_PATH", "migration_templates/definitions")
    candidate = Path(raw_path)
    if not candidate.is_absolute():
        candidate = (_project_root() / candidate).resolve()
    return TemplateRegistrySettings(templates_path=str(candidate))
