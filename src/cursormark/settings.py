"""Plugin settings, their JSON persistence, and the settings-tab surface."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Callable, Dict, Mapping

__all__ = [
    "DELAY_DEFAULT_MS",
    "DELAY_SLIDER",
    "DELAY_MAX_MS",
    "DELAY_MIN_MS",
    "DELAY_STEP_MS",
    "Settings",
    "SettingsStore",
    "SettingsTab",
    "SliderSetting",
    "clamp_delay",
]

LOGGER = logging.getLogger(__name__)
_SETTINGS_DIR = Path.home() / ".cursormark"
_DEFAULT_SETTINGS_PATH = _SETTINGS_DIR / "settings.json"

DELAY_MIN_MS = 0
DELAY_MAX_MS = 300
DELAY_STEP_MS = 10
DELAY_DEFAULT_MS = 100

# Field name -> key used in the persisted payload.
_STORAGE_KEYS: Mapping[str, str] = {
    "delay_after_file_opening": "delayAfterFileOpening",
    "debug_logging": "debugLogging",
}
_INT_ENV_OVERRIDES: Mapping[str, str] = {
    "CURSORMARK_DELAY_AFTER_FILE_OPENING": "delay_after_file_opening",
}
_BOOL_ENV_OVERRIDES: Mapping[str, str] = {
    "CURSORMARK_DEBUG_LOGGING": "debug_logging",
}
_TRUE_VALUES = {"1", "true", "yes", "on", "debug"}


def clamp_delay(value: Any) -> int:
    """Coerce ``value`` onto the slider's range and step."""

    try:
        numeric = float(value)
    except (TypeError, ValueError):
        return DELAY_DEFAULT_MS
    if numeric != numeric:  # NaN
        return DELAY_DEFAULT_MS
    return DELAY_SLIDER.normalize(numeric)


def _coerce_flag(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in _TRUE_VALUES
    return bool(value)


@dataclass(slots=True)
class Settings:
    """User-configurable settings persisted between sessions."""

    delay_after_file_opening: int = DELAY_DEFAULT_MS
    debug_logging: bool = False

    def __post_init__(self) -> None:
        self.delay_after_file_opening = clamp_delay(self.delay_after_file_opening)
        self.debug_logging = _coerce_flag(self.debug_logging)


class SettingsStore:
    """JSON persistence for :class:`Settings`, merged over defaults on load."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or _DEFAULT_SETTINGS_PATH

    @property
    def path(self) -> Path:
        return self._path

    def load(self, *, overrides: Mapping[str, Any] | None = None) -> Settings:
        """Load settings from disk, then apply CLI and environment overrides."""

        payload = self._read_payload()
        data = _from_storage(payload)
        try:
            settings = Settings(**data)
        except TypeError as exc:
            LOGGER.warning("Settings payload contained unexpected data: %s", exc)
            settings = Settings()
        LOGGER.debug("Settings loaded from %s: %s", self._path, settings)

        if overrides:
            settings = self._apply_overrides(settings, overrides, source="CLI")
        return self._apply_env_overrides(settings)

    def save(self, changes: Mapping[str, Any]) -> Path:
        """Write ``changes`` (keyed by field name) over the stored payload atomically.

        Only the named settings are touched, so values that came from CLI or
        environment overrides are never written back.
        """

        payload = self._read_payload()
        for field_name, value in changes.items():
            payload[_STORAGE_KEYS[field_name]] = value
        body = json.dumps(payload, indent=2, sort_keys=True)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(".tmp")
        tmp_path.write_text(body, encoding="utf-8")
        tmp_path.replace(self._path)
        LOGGER.debug("Settings saved to %s", self._path)
        return self._path

    def _read_payload(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            loaded = json.loads(self._path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as exc:
            LOGGER.warning("Settings file %s is not valid JSON: %s", self._path, exc)
            return {}
        if not isinstance(loaded, dict):
            LOGGER.warning("Settings file %s does not contain an object", self._path)
            return {}
        return loaded

    def _apply_overrides(self, settings: Settings, overrides: Mapping[str, Any], *, source: str) -> Settings:
        allowed = {field.name for field in fields(Settings)}
        filtered = {key: value for key, value in overrides.items() if key in allowed and value is not None}
        if not filtered:
            return settings
        LOGGER.debug("Applying %s settings overrides: %s", source, sorted(filtered))
        return replace(settings, **filtered)

    def _apply_env_overrides(self, settings: Settings) -> Settings:
        overrides: Dict[str, Any] = {}
        for env_name, field_name in _INT_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is None:
                continue
            try:
                overrides[field_name] = int(value, 10)
            except ValueError:
                LOGGER.warning("Environment override %s=%s is not a valid integer", env_name, value)
        for env_name, field_name in _BOOL_ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None:
                overrides[field_name] = _coerce_flag(value)
        if overrides:
            settings = self._apply_overrides(settings, overrides, source="environment")
        return settings


@dataclass(slots=True, frozen=True)
class SliderSetting:
    """Declarative description of a slider shown in the settings tab."""

    key: str
    name: str
    description: str
    minimum: int
    maximum: int
    step: int

    def normalize(self, value: float) -> int:
        """Clamp ``value`` into range and snap it to the nearest step."""

        bounded = min(max(float(value), self.minimum), self.maximum)
        return int(self.minimum + round((bounded - self.minimum) / self.step) * self.step)


DELAY_SLIDER = SliderSetting(
    key="delay_after_file_opening",
    name="Delay after opening a new note",
    description=(
        "The saved position is not restored when a link jumps to a heading, like "
        "[link](note.md#header). If it is, increase the delay until it no longer happens. "
        "If you do not link to sections, set the delay to zero. "
        f"Range {DELAY_MIN_MS}-{DELAY_MAX_MS} ms (default {DELAY_DEFAULT_MS} ms)."
    ),
    minimum=DELAY_MIN_MS,
    maximum=DELAY_MAX_MS,
    step=DELAY_STEP_MS,
)


class SettingsTab:
    """Headless settings surface; every change is persisted immediately."""

    title = "Save cursor position - Settings"

    def __init__(
        self,
        settings: Settings,
        store: SettingsStore,
        *,
        on_change: Callable[[str, Any], None] | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._on_change = on_change

    @property
    def sliders(self) -> tuple[SliderSetting, ...]:
        return (DELAY_SLIDER,)

    def change(self, key: str, value: Any) -> Any:
        slider = next((item for item in self.sliders if item.key == key), None)
        if slider is None:
            raise KeyError(f"Unknown setting: {key}")
        normalized = slider.normalize(value)
        setattr(self._settings, key, normalized)
        self._store.save({key: normalized})
        if self._on_change is not None:
            self._on_change(key, normalized)
        return normalized


def _from_storage(payload: Mapping[str, Any]) -> Dict[str, Any]:
    data: Dict[str, Any] = {}
    for field_name, storage_key in _STORAGE_KEYS.items():
        if storage_key in payload:
            data[field_name] = payload[storage_key]
        elif field_name in payload:
            data[field_name] = payload[field_name]
    return data
