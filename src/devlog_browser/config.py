"""Configuration models and the key-value settings store."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

logger = logging.getLogger(__name__)

DEFAULT_ENDPOINT = "http://127.0.0.1:8787/events"
ENDPOINT_KEY = "devlogEndpoint"


@dataclass(slots=True)
class PublisherSettings:
    """Runtime configuration for event delivery."""

    timeout: timedelta = timedelta(seconds=1)
    default_endpoint: str = DEFAULT_ENDPOINT

    @classmethod
    def from_timeout_ms(cls, timeout_ms: float) -> "PublisherSettings":
        return cls(timeout=timedelta(milliseconds=timeout_ms))


@dataclass(slots=True)
class SinkSettings:
    """Where the local event sink listens and what it reads."""

    host: str = "127.0.0.1"
    port: int = 8787
    projects_path: Optional[Path] = None


@dataclass(slots=True)
class ProjectConfig:
    """A named project and the title patterns that claim browser spans for it."""

    name: str
    browser_titles: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ProjectsConfig:
    projects: list[ProjectConfig] = field(default_factory=list)

    @classmethod
    def from_mapping(cls, data: Any) -> "ProjectsConfig":
        """Build from the ``projects.yaml`` layout.

        ``projects: [{name: ..., match: {browser: {title: [regex, ...]}}}]``
        """
        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("projects config must be a mapping")
        projects: list[ProjectConfig] = []
        for entry in data.get("projects") or []:
            if not isinstance(entry, dict):
                raise ValueError("each project must be a mapping")
            match = entry.get("match") or {}
            browser = match.get("browser") or {} if isinstance(match, dict) else None
            titles = browser.get("title") or [] if isinstance(browser, dict) else None
            if not isinstance(titles, list):
                raise ValueError(f"match.browser.title of {entry.get('name')!r} must be a list")
            projects.append(
                ProjectConfig(
                    name=str(entry.get("name") or ""),
                    browser_titles=[str(pattern) for pattern in titles],
                )
            )
        return cls(projects=projects)

    def has_project(self, name: str) -> bool:
        return any(project.name == name for project in self.projects)


def load_projects_config(path: Optional[Path]) -> ProjectsConfig:
    """Read ``projects.yaml``; a missing file yields an empty config."""
    if path is None:
        return ProjectsConfig()
    try:
        raw = Path(path).read_text(encoding="utf-8")
    except FileNotFoundError:
        return ProjectsConfig()
    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid YAML in {path}: {exc}") from exc
    return ProjectsConfig.from_mapping(data)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class MemorySettingsStore:
    """Dictionary-backed store."""

    def __init__(self, values: Optional[dict[str, str]] = None) -> None:
        self._values = dict(values or {})

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonSettingsStore:
    """Flat JSON object on disk; a missing or unreadable file means unset."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        values = self._load()
        values[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(values, indent=2, sort_keys=True), encoding="utf-8")

    def _load(self) -> dict[str, object]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable settings file %s", self.path)
            return {}
        if not isinstance(data, dict):
            logger.warning("Settings file %s does not hold an object", self.path)
            return {}
        return data


def resolve_endpoint(store: KeyValueStore, default: str = DEFAULT_ENDPOINT) -> str:
    value = store.get(ENDPOINT_KEY)
    if value and value.strip():
        return value.strip()
    return default
