"""
DocShelf Configuration — Load and validate docshelf.yaml at startup.

Usage:
    from docshelf.engine.config import load_config, get_config
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from docshelf.engine.errors import DocShelfConfigError

CONFIG_FILE_NAME = "docshelf.yaml"

DEFAULT_ALLOWED_EXTENSIONS = [
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "jpg", "jpeg", "png", "txt",
]


# ---------------------------------------------------------------------------
# Pydantic models for docshelf.yaml
# ---------------------------------------------------------------------------

class DocumentsConfig(BaseModel):
    max_upload_size_mb: int = Field(default=50, gt=0)
    allowed_extensions: List[str] = Field(
        default_factory=lambda: list(DEFAULT_ALLOWED_EXTENSIONS)
    )
    upload_progress_step: int = 10

    @field_validator("allowed_extensions")
    @classmethod
    def normalize_extensions(cls, v: List[str]) -> List[str]:
        return [ext.lower().lstrip(".") for ext in v if ext.strip()]

    @field_validator("upload_progress_step")
    @classmethod
    def validate_step(cls, v: int) -> int:
        if not 1 <= v <= 100:
            raise ValueError(f"upload_progress_step must be within 1..100, got {v}")
        return v


class LoggingConfig(BaseModel):
    level: str = "INFO"
    format: str = "json"
    activity_max_entries: int = Field(default=1000, gt=0)

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        v = v.upper()
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level '{v}'")
        return v

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError(f"format must be json/text, got '{v}'")
        return v


class SearchConfig(BaseModel):
    tag_prefix: str = "tag:"
    highlight_class: str = "search-highlight"


class SeedUser(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    avatar: Optional[str] = None
    role: Optional[str] = None


class SeedTag(BaseModel):
    id: str
    name: str
    color: str


def _default_users() -> List[SeedUser]:
    return [
        SeedUser(id="user-1", name="Demo User", avatar="https://i.pravatar.cc/150?u=user-1", role="admin"),
        SeedUser(id="user-2", name="Jane Smith", avatar="https://i.pravatar.cc/150?u=user-2"),
        SeedUser(id="user-3", name="Bob Johnson", avatar="https://i.pravatar.cc/150?u=user-3"),
    ]


def _default_tags() -> List[SeedTag]:
    return [
        SeedTag(id="tag-1", name="Important", color="#ef4444"),
        SeedTag(id="tag-2", name="Work", color="#3b82f6"),
        SeedTag(id="tag-3", name="Personal", color="#22c55e"),
    ]


class SeedConfig(BaseModel):
    users: List[SeedUser] = Field(default_factory=_default_users)
    tags: List[SeedTag] = Field(default_factory=_default_tags)
    # None selects the first seeded user
    current_user_id: Optional[str] = None

    @model_validator(mode="after")
    def validate_current_user(self) -> "SeedConfig":
        if self.current_user_id is not None and self.current_user_id not in {u.id for u in self.users}:
            raise ValueError(f"current_user_id '{self.current_user_id}' is not a seeded user")
        return self


class ShelfConfig(BaseModel):
    """Root model for docshelf.yaml."""
    name: str = "DocShelf"
    version: str = "1.0.0"
    environment: str = "dev"

    documents: DocumentsConfig = DocumentsConfig()
    logging: LoggingConfig = LoggingConfig()
    search: SearchConfig = SearchConfig()
    seed: SeedConfig = SeedConfig()

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        if v not in ("dev", "staging", "prod"):
            raise ValueError(f"environment must be dev/staging/prod, got '{v}'")
        return v

    @property
    def max_upload_bytes(self) -> int:
        return self.documents.max_upload_size_mb * 1024 * 1024


# ---------------------------------------------------------------------------
# Config Loading Functions
# ---------------------------------------------------------------------------

_config: Optional[ShelfConfig] = None


def _find_project_root() -> Path:
    """Find the project root by looking for docshelf.yaml."""
    current = Path.cwd()
    for parent in [current, *current.parents]:
        if (parent / CONFIG_FILE_NAME).exists():
            return parent
    return current


def load_config(config_path: Optional[str] = None) -> ShelfConfig:
    """
    Load and validate docshelf.yaml.

    Args:
        config_path: Explicit path to docshelf.yaml. If None, auto-discovers.

    Returns:
        Validated ShelfConfig instance. Defaults if the file does not exist.
    """
    global _config

    if config_path is None:
        config_path = str(_find_project_root() / CONFIG_FILE_NAME)

    path = Path(config_path)
    if not path.exists():
        _config = ShelfConfig()
        return _config

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise DocShelfConfigError(f"Cannot parse {path}: {e}", object_ref=str(path)) from e

    if not isinstance(raw, dict):
        raise DocShelfConfigError(f"{path} must contain a mapping", object_ref=str(path))

    # Top-level "shelf" key holds name/version/environment, like "platform" in other tools
    shelf_data: Dict[str, Any] = raw.get("shelf", {}) or {}
    config_data = {
        "name": shelf_data.get("name", raw.get("name", "DocShelf")),
        "version": shelf_data.get("version", raw.get("version", "1.0.0")),
        "environment": shelf_data.get("environment", raw.get("environment", "dev")),
        "documents": raw.get("documents", {}) or {},
        "logging": raw.get("logging", {}) or {},
        "search": raw.get("search", {}) or {},
    }
    if raw.get("seed"):
        config_data["seed"] = raw["seed"]

    try:
        _config = ShelfConfig(**config_data)
    except ValidationError as e:
        raise DocShelfConfigError(
            f"Invalid configuration in {path}",
            object_ref=str(path),
            validation_errors=[
                {"field": ".".join(str(p) for p in err["loc"]), "error": err["msg"]}
                for err in e.errors(include_url=False)
            ],
        ) from e
    return _config


def get_config() -> ShelfConfig:
    """Get the currently loaded config, loading if necessary."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reset_config() -> None:
    """Forget the cached config (next get_config() reloads)."""
    global _config
    _config = None
