"""Engine configuration with environment overrides."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from activity_timeline.app_names import DEFAULT_BROWSER_APPS, DEFAULT_EDITOR_APPS, IDE_APPS, SYSTEM_APPS, TERMINAL_APPS
from activity_timeline.errors import TimelineError
from activity_timeline.timeutils import resolve_tzinfo

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class EngineConfig:
    """Defaults shared by the canonical builder, grouping and summaries."""

    timezone: str = "UTC"
    min_duration_seconds: float = 5.0
    exclude_system_apps: bool = False
    top_n: int = 10
    browser_apps: frozenset = field(default_factory=lambda: DEFAULT_BROWSER_APPS)
    editor_apps: frozenset = field(default_factory=lambda: DEFAULT_EDITOR_APPS)
    system_apps: frozenset = field(default_factory=lambda: SYSTEM_APPS)
    terminal_apps: tuple = TERMINAL_APPS
    ide_apps: tuple = IDE_APPS
    hostname: str = "unknown"

    def is_browser(self, app: str) -> bool:
        return app.strip().lower() in self.browser_apps

    def is_editor(self, app: str) -> bool:
        return app.strip().lower() in self.editor_apps

    def is_system_app(self, app: str) -> bool:
        return app in self.system_apps


DEFAULT_CONFIG = EngineConfig()


def _read_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw in (None, ""):
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", key, raw)
        return default
    if value < 0:
        logger.warning("Ignoring negative %s=%r", key, raw)
        return default
    return value


def load_config(env: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """Build a config from ``ACTIVITYWATCH_TIMEZONE``/``TZ`` and ``AW_*`` variables."""

    env = os.environ if env is None else env

    timezone_name = env.get("ACTIVITYWATCH_TIMEZONE") or env.get("TZ") or DEFAULT_CONFIG.timezone
    try:
        resolve_tzinfo(timezone_name)
    except TimelineError:
        logger.warning("Invalid timezone %r, falling back to UTC", timezone_name)
        timezone_name = "UTC"

    top_n = int(_read_float(env, "AW_TOP_N", DEFAULT_CONFIG.top_n)) or DEFAULT_CONFIG.top_n
    exclude = env.get("AW_EXCLUDE_SYSTEM_APPS", "").strip().lower() in _TRUE_VALUES

    return EngineConfig(
        timezone=timezone_name,
        min_duration_seconds=_read_float(env, "AW_MIN_DURATION_SECONDS", DEFAULT_CONFIG.min_duration_seconds),
        exclude_system_apps=exclude,
        top_n=top_n,
        hostname=env.get("AW_HOSTNAME", "").strip() or DEFAULT_CONFIG.hostname,
    )
