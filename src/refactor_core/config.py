"""Analyzer settings.

Settings are plain values passed explicitly to the functions that use them:

    from refactor_core.config import load_settings

    settings = load_settings(Path("refactor-core.yaml"))
    result = validate(unit, snapshot, settings=settings)
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from refactor_core.errors import ConfigError

log = logging.getLogger(__name__)


class AnalyzerSettings(BaseModel):
    # Diagnostics provider
    report_unused_variables: bool = True
    report_unused_imports: bool = True

    # Unused-member detector: max reference searches in flight
    reference_search_concurrency: int = Field(default=8, ge=1)

    # Extraction pre-assessment: add advisory warnings (inputs/outputs, async, try)
    verbose_extraction: bool = False


def load_settings(path: Path | None) -> AnalyzerSettings:
    """Load settings from a YAML file.

    A missing path (or None) yields the defaults. Unknown keys are ignored.
    """
    if path is None or not path.exists():
        return AnalyzerSettings()

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Cannot parse settings file {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")

    # Accept both a flat mapping and one nested under "refactor_core"
    section = data.get("refactor_core", data)
    try:
        settings = AnalyzerSettings.model_validate(section)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings in {path}: {exc}") from exc

    log.debug("Loaded settings from %s: %s", path, settings.model_dump())
    return settings
