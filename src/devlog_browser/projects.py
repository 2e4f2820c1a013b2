"""Assign browser activity to projects by title pattern."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Mapping, Optional

from .config import ProjectsConfig

OTHER_PROJECT = "Other"
BROWSER_TYPE = "browser"


@dataclass(slots=True)
class CompiledProject:
    name: str
    title_patterns: list[re.Pattern[str]] = field(default_factory=list)

    def matches(self, title: str) -> bool:
        return any(pattern.search(title) for pattern in self.title_patterns)


@dataclass(slots=True)
class DrillDownRow:
    name: str
    type: str
    seconds: int


def compile_project_matchers(config: ProjectsConfig) -> list[CompiledProject]:
    """Compile every title pattern; a bad pattern raises ``ValueError``."""
    compiled: list[CompiledProject] = []
    for project in config.projects:
        entry = CompiledProject(name=project.name)
        for pattern in project.browser_titles:
            try:
                entry.title_patterns.append(re.compile(pattern))
            except re.error as exc:
                raise ValueError(f"invalid title pattern {pattern!r} for {project.name!r}") from exc
        compiled.append(entry)
    return compiled


def _match_project(compiled: list[CompiledProject], title: str) -> Optional[str]:
    # First project in file order wins.
    for project in compiled:
        if project.matches(title):
            return project.name
    return None


def classify_projects(
    browser: Mapping[str, int], config: ProjectsConfig
) -> tuple[dict[str, int], dict[str, int]]:
    """Return per-project totals and the unmatched titles counted as "Other"."""
    compiled = compile_project_matchers(config)
    totals: dict[str, int] = {project.name: 0 for project in config.projects}
    totals[OTHER_PROJECT] = 0
    others: dict[str, int] = {}
    for title, seconds in browser.items():
        name = _match_project(compiled, title)
        if name is None:
            totals[OTHER_PROJECT] += seconds
            others[title] = others.get(title, 0) + seconds
        else:
            totals[name] += seconds
    return totals, others


def drill_down_rows(
    browser: Mapping[str, int], config: ProjectsConfig, project_name: str
) -> tuple[list[DrillDownRow], int, bool]:
    """Rows for one project, sorted by time. The flag says whether it exists."""
    if project_name != OTHER_PROJECT and not config.has_project(project_name):
        return [], 0, False

    compiled = compile_project_matchers(config)
    rows: list[DrillDownRow] = []
    for title, seconds in browser.items():
        if (_match_project(compiled, title) or OTHER_PROJECT) == project_name:
            rows.append(DrillDownRow(name=title, type=BROWSER_TYPE, seconds=seconds))
    rows.sort(key=lambda row: (-row.seconds, row.name, row.type))
    return rows, sum(row.seconds for row in rows), True
