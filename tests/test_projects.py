"""Tests for grouping browser titles into projects."""

import pytest

from devlog_browser.config import ProjectConfig, ProjectsConfig
from devlog_browser.projects import OTHER_PROJECT, classify_projects, drill_down_rows

CONFIG = ProjectsConfig(
    projects=[
        ProjectConfig(name="devlog", browser_titles=["devlog", r"^Issue #\d+"]),
        ProjectConfig(name="docs", browser_titles=["Docs", "devlog docs"]),
        ProjectConfig(name="idle"),
    ]
)

BROWSER = {
    "devlog - GitHub": 300,
    "Issue #12: crash": 120,
    "Python Docs": 600,
    "devlog docs": 60,
    "Mail": 90,
    "News": 90,
}


def test_classify_sums_matches_and_lists_every_project():
    totals, others = classify_projects(BROWSER, CONFIG)
    assert totals == {"devlog": 480, "docs": 600, "idle": 0, OTHER_PROJECT: 180}
    assert others == {"Mail": 90, "News": 90}


def test_first_matching_project_wins():
    totals, _ = classify_projects({"devlog docs": 60}, CONFIG)
    assert totals["devlog"] == 60
    assert totals["docs"] == 0


def test_empty_config_puts_everything_in_other():
    totals, others = classify_projects({"Mail": 30}, ProjectsConfig())
    assert totals == {OTHER_PROJECT: 30}
    assert others == {"Mail": 30}


def test_drill_down_sorts_by_time_then_title():
    rows, total, exists = drill_down_rows(BROWSER, CONFIG, "devlog")
    assert exists
    assert total == 480
    assert [(row.name, row.type, row.seconds) for row in rows] == [
        ("devlog - GitHub", "browser", 300),
        ("Issue #12: crash", "browser", 120),
        ("devlog docs", "browser", 60),
    ]


def test_drill_down_into_other():
    rows, total, exists = drill_down_rows(BROWSER, CONFIG, OTHER_PROJECT)
    assert exists
    assert total == 180
    assert [row.name for row in rows] == ["Mail", "News"]


def test_drill_down_unknown_project():
    assert drill_down_rows(BROWSER, CONFIG, "missing") == ([], 0, False)


def test_drill_down_project_without_activity():
    rows, total, exists = drill_down_rows(BROWSER, CONFIG, "idle")
    assert exists
    assert (rows, total) == ([], 0)


def test_invalid_pattern_raises_value_error():
    config = ProjectsConfig(projects=[ProjectConfig(name="bad", browser_titles=["("])])
    with pytest.raises(ValueError):
        classify_projects({"Mail": 1}, config)
    with pytest.raises(ValueError):
        drill_down_rows({"Mail": 1}, config, "bad")
