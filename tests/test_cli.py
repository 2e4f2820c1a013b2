"""Tests for the command-line interface."""

from typer.testing import CliRunner

from devlog_browser.cli import app

runner = CliRunner()


def test_endpoint_shows_default(tmp_path):
    result = runner.invoke(app, ["endpoint", "--settings", str(tmp_path / "settings.json")])
    assert result.exit_code == 0
    assert "http://127.0.0.1:8787/events" in result.output


def test_endpoint_can_be_changed(tmp_path):
    settings = str(tmp_path / "settings.json")
    result = runner.invoke(app, ["endpoint", "http://127.0.0.1:9999/events", "--settings", settings])
    assert result.exit_code == 0
    result = runner.invoke(app, ["endpoint", "--settings", settings])
    assert "http://127.0.0.1:9999/events" in result.output


def test_replay_reports_bad_feed(tmp_path):
    feed = tmp_path / "feed.jsonl"
    feed.write_text('{"kind": "startup"}\n{"kind": "unknown"}\n', encoding="utf-8")
    result = runner.invoke(
        app,
        ["replay", str(feed), "--settings", str(tmp_path / "settings.json")],
    )
    assert result.exit_code == 1


def test_stats_on_empty_database(tmp_path):
    result = runner.invoke(
        app,
        [
            "stats",
            "--date",
            "2026-10-19",
            "--db",
            str(tmp_path / "events.sqlite3"),
            "--projects",
            str(tmp_path / "projects.yaml"),
            "--json",
        ],
    )
    assert result.exit_code == 0
    assert '"browser_active_span": {}' in result.output
    assert '"projects": {\n    "Other": 0\n  }' in result.output


def test_stats_rejects_impossible_date(tmp_path):
    result = runner.invoke(
        app,
        ["stats", "--date", "2026-13-01", "--db", str(tmp_path / "events.sqlite3")],
    )
    assert result.exit_code == 2
    assert "YYYY-MM-DD" in result.output


def test_stats_reports_broken_projects_file(tmp_path):
    projects = tmp_path / "projects.yaml"
    projects.write_text("projects: [\n", encoding="utf-8")
    result = runner.invoke(
        app,
        ["stats", "--db", str(tmp_path / "events.sqlite3"), "--projects", str(projects)],
    )
    assert result.exit_code == 1


def test_serve_takes_host_port_and_db(tmp_path, monkeypatch):
    calls = []
    monkeypatch.setattr(
        "devlog_browser.server_runner.run_sink",
        lambda **kwargs: calls.append(kwargs),
    )
    db = tmp_path / "events.sqlite3"
    projects = tmp_path / "projects.yaml"
    result = runner.invoke(
        app,
        [
            "serve",
            "--host",
            "0.0.0.0",
            "--port",
            "9000",
            "--db",
            str(db),
            "--projects",
            str(projects),
        ],
    )
    assert result.exit_code == 0
    settings = calls[0]["settings"]
    assert (settings.host, settings.port, settings.projects_path) == ("0.0.0.0", 9000, projects)
    assert calls[0]["db_path"] == db


def test_serve_rejects_out_of_range_port():
    result = runner.invoke(app, ["serve", "--port", "70000"])
    assert result.exit_code == 2
