"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX = "LESSONPUB_"


class Settings(BaseModel):
    app_name:      str = "lessonpub"
    source_dir:    str = Field(default="content", description="Root directory of lesson sources")
    output_dir:    str = Field(default="public",  description="Directory for rendered pages and listing")
    output_format: str = Field(default="html", pattern="^(html|md)$", description="html or md")
    base_url:      str = Field(default="",        description="Prefix for rendered page URLs")
    parser_config: str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    workers:       int = Field(default=4, ge=1,   description="Parallel workers for resolve/validate; 1 runs inline")
    strict:        bool = Field(default=False,    description="Treat collected errors as a failed build")
    report_level:  str = Field(default="warning", pattern="^(warning|error)$", description="Lowest severity reported")
    report_file:   Optional[str] = Field(default=None, description="Also write the build report to this file")
    listing_name:  str = Field(default="index",   description="File stem of the generated listing")
    log_level:     str = Field(default="WARNING", description="stdlib logging level name")
    unchecked_languages: list[str] = Field(
        default_factory=lambda: ["text", "plain", "console", "output"],
        description="Code block languages skipped by the snippet balance check",
    )


def _env_value(name: str, raw: str) -> Any:
    """Split comma-separated env values for list fields; pass others through for pydantic."""
    if name == "unchecked_languages":
        return [part.strip() for part in raw.split(",") if part.strip()]
    return raw


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then LESSONPUB_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = _env_value(name, val)

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
