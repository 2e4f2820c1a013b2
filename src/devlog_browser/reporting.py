"""Rendering of daily browser activity summaries."""

from __future__ import annotations

import json
import math
from datetime import date
from pathlib import Path
from typing import Any, Mapping, Optional

from wcwidth import wcswidth, wcwidth

from .config import load_projects_config
from .db import browser_durations_by_title, database_connection
from .projects import BROWSER_TYPE, DrillDownRow, classify_projects

NAME_WIDTH = 60
TYPE_WIDTH = 8
TIME_WIDTH = 9


def ceil_minutes(seconds: int) -> int:
    if seconds <= 0:
        return 0
    return math.ceil(seconds / 60.0)


def sorted_entries(durations: Mapping[str, int]) -> list[tuple[str, int]]:
    return sorted(durations.items(), key=lambda item: (-item[1], item[0]))


def display_width(value: str) -> int:
    width = wcswidth(value)
    if width >= 0:
        return width
    # Control characters make wcswidth give up; count them as zero columns.
    return sum(max(wcwidth(char), 0) for char in value)


def _truncate(value: str, width: int) -> str:
    used = 0
    for index, char in enumerate(value):
        used += max(wcwidth(char), 0)
        if used > width:
            return value[:index]
    return value


def pad_right(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if display_width(value) >= width:
        value = _truncate(value, width)
    return value + " " * (width - display_width(value))


def pad_left(value: str, width: int) -> str:
    if width <= 0:
        return ""
    if display_width(value) >= width:
        value = _truncate(value, width)
    return " " * (width - display_width(value)) + value


def _minutes_cell(seconds: int) -> str:
    return pad_left(str(ceil_minutes(seconds)), TIME_WIDTH)


def _three_column_header(first: str) -> list[str]:
    return [
        f"| {pad_right(first, NAME_WIDTH)} | {pad_right('Type', TYPE_WIDTH)} | {pad_left('Time(min)', TIME_WIDTH)} |",
        f"| {'-' * NAME_WIDTH} | {'-' * TYPE_WIDTH} | {'-' * TIME_WIDTH} |",
    ]


def render_stats_markdown(projects: Mapping[str, int], others: Mapping[str, int]) -> str:
    lines = [
        "# Project Summary",
        "",
        f"| {pad_right('Project', NAME_WIDTH)} | {pad_left('Time(min)', TIME_WIDTH)} |",
        f"| {'-' * NAME_WIDTH} | {'-' * TIME_WIDTH} |",
    ]
    for name, seconds in sorted_entries(projects):
        lines.append(f"| {pad_right(name, NAME_WIDTH)} | {_minutes_cell(seconds)} |")

    lines.extend(["", "# Others List", ""])
    lines.extend(_three_column_header("Others"))
    for name, seconds in sorted_entries(others):
        lines.append(
            f"| {pad_right(name, NAME_WIDTH)} | {pad_right(BROWSER_TYPE, TYPE_WIDTH)} | {_minutes_cell(seconds)} |"
        )
    return "\n".join(lines) + "\n"


def render_drill_down_markdown(project_name: str, total_seconds: int, rows: list[DrillDownRow]) -> str:
    lines = [f"# {project_name} {ceil_minutes(total_seconds)}: Drill down", ""]
    lines.extend(_three_column_header("Title"))
    for row in rows:
        lines.append(
            f"| {pad_right(row.name, NAME_WIDTH)} | {pad_right(row.type, TYPE_WIDTH)} | {_minutes_cell(row.seconds)} |"
        )
    return "\n".join(lines) + "\n"


def stats_payload(day: date, browser: Mapping[str, int], projects: Mapping[str, int], others: Mapping[str, int]) -> dict[str, Any]:
    return {
        "date": day.isoformat(),
        "browser_active_span": dict(browser),
        "projects": dict(projects),
        "project_others": {BROWSER_TYPE: dict(others)},
    }


def drill_down_payload(project_name: str, total_seconds: int, rows: list[DrillDownRow]) -> dict[str, Any]:
    return {
        "name": project_name,
        "seconds": total_seconds,
        "list": [{"title": row.name, "type": row.type, "seconds": row.seconds} for row in rows],
    }


def format_duration(seconds: float) -> str:
    total_seconds = int(round(seconds))
    hours, remainder = divmod(total_seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


class SummaryPrinter:
    """Render human-readable summaries in the console."""

    def __init__(self, db_path: Path, projects_path: Optional[Path] = None) -> None:
        self.db_path = Path(db_path)
        self.projects_path = projects_path

    def print_daily_summary(self, day: date, as_json: bool = False) -> None:
        with database_connection(self.db_path) as conn:
            browser = browser_durations_by_title(conn, day)
        projects, others = classify_projects(browser, load_projects_config(self.projects_path))
        if as_json:
            print(json.dumps(stats_payload(day, browser, projects, others), indent=2))
            return
        if not browser:
            print("No browser activity recorded for the selected day.")
            return
        print(f"Browser activity for {day.isoformat()}: {format_duration(sum(browser.values()))}")
        print()
        print(render_stats_markdown(projects, others))
