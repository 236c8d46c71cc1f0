"""Application configuration handling."""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal, Mapping

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

ENV_PREFIX = "CB_"
DEFAULT_CONFIG_PATH = Path("~/.config/commonbase/config.yaml")

_YAML_KEY_MAP: Mapping[tuple[str, ...], str] = {
    ("storage", "db_path"): "db_path",
    ("embeddings", "backend"): "embedding_backend",
    ("embeddings", "api_key"): "embedding_api_key",
    ("embeddings", "model"): "embedding_model",
    ("embeddings", "dim"): "embedding_dim",
    ("embeddings", "timeout"): "embedding_timeout",
    ("embeddings", "max_retries"): "embedding_max_retries",
    ("embeddings", "vision_model"): "vision_model",
    ("search", "threshold"): "default_threshold",
    ("search", "limit"): "default_limit",
    ("search", "similar_limit"): "similar_limit",
    ("search", "random_limit"): "random_limit",
    ("search", "list_limit"): "list_limit",
}


class Settings(BaseModel):
    """Runtime configuration loaded from YAML file and environment variables."""

    db_path: Path = Field(default=Path.home() / ".commonbase" / "commonbase.db")
    embedding_backend: Literal["openai", "hashed"] = "openai"
    embedding_api_key: str | None = None
    embedding_model: str = "text-embedding-3-small"
    embedding_dim: int = Field(default=1536, gt=0)
    embedding_timeout: float = Field(default=30.0, gt=0)
    embedding_max_retries: int = Field(default=0, ge=0)
    vision_model: str = "gpt-4o-mini"
    default_threshold: float = Field(default=0.7, ge=0.0, le=1.0)
    default_limit: int = Field(default=20, gt=0)
    similar_limit: int = Field(default=5, gt=0)
    random_limit: int = Field(default=10, gt=0)
    list_limit: int = Field(default=50, gt=0)

    model_config = {
        "validate_assignment": True,
        "extra": "ignore",
    }

    @field_validator("db_path", mode="before")
    @classmethod
    def _expand_db_path(cls, value: Any) -> Path:
        if isinstance(value, Path):
            return value.expanduser()
        if isinstance(value, str):
            return Path(value).expanduser()
        raise TypeError("db_path must be a path or string")

    @model_validator(mode="after")
    def _fallback_api_key(self) -> "Settings":
        if not self.embedding_api_key:
            env_key = os.environ.get("OPENAI_API_KEY")
            if env_key:
                self.embedding_api_key = env_key
        return self

    @classmethod
    def from_yaml(cls, path: Path | None = None) -> "Settings":
        """Load YAML config and overlay env vars; fall back to defaults."""
        config_path = cls._resolve_config_path(path)
        data: dict[str, Any] = {}
        if config_path and config_path.exists():
            with config_path.open("r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
            data.update(_flatten_yaml(raw))
        data.update(_load_env_overrides())
        return cls(**data)

    @staticmethod
    def _resolve_config_path(path: Path | None) -> Path | None:
        if path is not None:
            return path.expanduser()
        env_path = os.environ.get(f"{ENV_PREFIX}CONFIG")
        if env_path:
            return Path(env_path).expanduser()
        resolved_default = DEFAULT_CONFIG_PATH.expanduser()
        return resolved_default if resolved_default.exists() else None

    def public_dict(self) -> dict[str, Any]:
        """Settings safe to show to a client; the API key is reduced to a flag."""
        payload = self.model_dump(mode="json", exclude={"embedding_api_key"})
        payload["embedding_api_key_set"] = bool(self.embedding_api_key)
        return payload


def _flatten_yaml(raw: Mapping[str, Any], prefix: tuple[str, ...] = ()) -> dict[str, Any]:
    """Flatten nested YAML configuration to Settings field names."""
    flat: dict[str, Any] = {}
    for key, value in raw.items():
        next_prefix = prefix + (key,)
        if isinstance(value, Mapping):
            flat.update(_flatten_yaml(value, prefix=next_prefix))
        else:
            mapped_key = _YAML_KEY_MAP.get(next_prefix)
            if mapped_key:
                flat[mapped_key] = value
            elif key in Settings.model_fields:
                flat[key] = value
    return flat


def _load_env_overrides() -> dict[str, Any]:
    """Map environment variables with CB_ prefix into Settings fields."""
    overrides: dict[str, Any] = {}
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        field_name = key[len(ENV_PREFIX) :].lower()
        if field_name in Settings.model_fields:
            overrides[field_name] = value
    return overrides


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Cached settings accessor for dependency injection."""
    return Settings.from_yaml()


__all__ = ["Settings", "get_settings"]
