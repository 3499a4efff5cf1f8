"""
Test CLI commands and exit codes.
"""
import json
import pytest
from unittest.mock import Mock, patch
from triage_core.cli import app
from triage_core.config import CONFIG_PATH_ENV
from typer.testing import CliRunner

NOW = "2024-03-10T12:00:00Z"


@pytest.fixture
def runner():
    """CLI test runner."""
    return CliRunner()


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    """Empty working directory so no config files are picked up."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    return tmp_path


def write_json(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_cli_help(runner):
    """Test CLI help lists the commands."""
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("digest", "conflicts", "slots", "score", "top-actions", "suggest-projects", "presets", "normalize-config"):
        assert command in result.output


def test_cli_digest_help(runner):
    result = runner.invoke(app, ["digest", "--help"])
    assert result.exit_code == 0
    assert "--out" in result.output
    assert "--now" in result.output


def test_cli_digest_success(runner):
    """Test the digest command reports what it wrote."""
    with patch('triage_core.cli.run_digest') as mock_run:
        mock_run.return_value = Mock(meta=Mock(total_projects=2), top_actions=[{}, {}, {}])

        result = runner.invoke(app, ["digest", "snapshot.json", "--out", "/tmp/digests", "--now", NOW])

        assert result.exit_code == 0
        assert "Digest written to /tmp/digests: 2 projects, 3 top actions" in result.output
        mock_run.assert_called_once()
        assert mock_run.call_args.args[:3] == ("snapshot.json", "/tmp/digests", NOW)


def test_cli_digest_failure(runner):
    """Test that a failing run exits with code 1."""
    with patch('triage_core.cli.run_digest', side_effect=ValueError("bad snapshot")):
        result = runner.invoke(app, ["digest", "snapshot.json"])

    assert result.exit_code == 1
    assert "Error: bad snapshot" in result.output


def test_cli_digest_end_to_end(runner, workspace):
    snapshot = write_json(workspace / "snapshot.json", [
        {"project": {"id": "p1", "name": "Spring Tour"}, "tasks": [{"id": "t1", "title": "Sign rider"}]},
    ])

    result = runner.invoke(app, ["digest", snapshot, "--out", str(workspace / "out"), "--now", NOW,
                                 "--no-markdown", "--log-level", "ERROR"])

    assert result.exit_code == 0
    assert (workspace / "out" / "digest-2024-03-10.json").exists()
    assert not (workspace / "out" / "digest-2024-03-10.md").exists()


def test_cli_conflicts(runner, workspace):
    items = write_json(workspace / "items.json", {"items": [
        {"id": "a", "lane": "Live", "city": "London", "startsAt": "2024-03-11T10:00:00Z", "endsAt": "2024-03-11T11:00:00Z"},
        {"id": "b", "lane": "Live", "city": "Tokyo", "startsAt": "2024-03-11T10:30:00Z", "endsAt": "2024-03-11T11:30:00Z"},
    ]})

    full = runner.invoke(app, ["conflicts", items])
    light = runner.invoke(app, ["conflicts", items, "--no-travel"])

    assert full.exit_code == 0
    assert '"a:b:lane_overlap"' in full.output
    assert '"a:b:travel_time"' in full.output
    assert light.exit_code == 0
    assert '"a:b:lane_overlap"' in light.output
    assert "travel_time" not in light.output


def test_cli_slots(runner, workspace):
    items = write_json(workspace / "items.json", [])

    result = runner.invoke(app, ["slots", items, "--start", "2024-03-11T09:00:00Z",
                                 "--end", "2024-03-11T10:00:00Z", "--duration", "1"])

    assert result.exit_code == 0
    assert '"start": "2024-03-11T09:00:00+00:00"' in result.output
    assert '"confidence": "high"' in result.output


def test_cli_slots_invalid_range(runner, workspace):
    items = write_json(workspace / "items.json", [])

    result = runner.invoke(app, ["slots", items, "--start", "2024-03-11T10:00:00Z",
                                 "--end", "2024-03-11T09:00:00Z", "--duration", "1"])

    assert result.exit_code == 1
    assert "date_range start must be before its end" in result.output


def test_cli_score_task(runner, workspace):
    entity = write_json(workspace / "task.json", {"id": "t1", "title": "Book flights"})

    result = runner.invoke(app, ["score", entity, "--type", "task", "--now", NOW])

    assert result.exit_code == 0
    assert '"id": "task:t1"' in result.output
    assert '"score": 10' in result.output
    assert "No due date set (+10)" in result.output


def test_cli_score_emails(runner, workspace):
    entities = write_json(workspace / "emails.json", [
        {"id": "m1", "category": "LEGAL/Contract_Draft"},
        {"id": "m2", "category": "MISC/Uncategorized", "triageState": "resolved"},
    ])

    result = runner.invoke(app, ["score", entities, "--now", NOW])

    assert result.exit_code == 0
    assert '"id": "email:m1"' in result.output
    assert '"score": 120' in result.output
    assert '"id": "email:m2"' in result.output


def test_cli_score_unknown_type(runner, workspace):
    entity = write_json(workspace / "task.json", {"id": "t1"})

    result = runner.invoke(app, ["score", entity, "--type", "invoice"])

    assert result.exit_code == 1
    assert "Unknown entity type 'invoice'" in result.output


def test_cli_score_missing_file(runner, workspace):
    result = runner.invoke(app, ["score", str(workspace / "missing.json")])
    assert result.exit_code == 1
    assert "Error:" in result.output


def test_cli_top_actions(runner, workspace):
    project = write_json(workspace / "project.json", {
        "project": {"id": "p1", "name": "Spring Tour"},
        "tasks": [{"id": "t1", "title": "Sign rider", "dueAt": "2024-03-08T12:00:00Z"}, {"id": "t2"}],
    })

    result = runner.invoke(app, ["top-actions", project, "--now", NOW, "--limit", "1"])

    assert result.exit_code == 0
    assert '"id": "task:t1"' in result.output
    assert '"project_id": "p1"' in result.output
    assert "task:t2" not in result.output


def test_cli_explain_rule(runner, workspace):
    rule = write_json(workspace / "rule.json", {"all": [
        {"field": "category", "operator": "starts_with", "value": "legal/"},
        {"field": "priority", "operator": "greater_than", "value": 90},
    ]})
    entity = write_json(workspace / "email.json", {"category": "LEGAL/Contract_Draft", "priority": 80})

    result = runner.invoke(app, ["explain-rule", rule, entity, "--now", NOW])

    assert result.exit_code == 0
    assert '"matched": false' in result.output
    assert '"field": "priority"' in result.output


def test_cli_suggest_projects(runner, workspace):
    email = write_json(workspace / "email.json", {
        "id": "m1", "subject": "Spring Tour rider", "fromEmail": "agent@bookings.ie",
    })
    projects = write_json(workspace / "projects.json", {"projects": [
        {"id": "p1", "name": "Spring Tour", "labels": {"agentDomain": "bookings.ie"}},
        {"id": "p2", "name": "Album Release", "status": "archived"},
    ]})

    result = runner.invoke(app, ["suggest-projects", email, projects])

    assert result.exit_code == 0
    assert '"project_id": "p1"' in result.output
    assert '"project_id": "p2"' not in result.output
    assert "Sender domain aligns with bookings.ie" in result.output


def test_cli_presets(runner):
    result = runner.invoke(app, ["presets"])

    assert result.exit_code == 0
    assert "balanced: " in result.output
    assert "inbox_zero: Inbox zero" in result.output
    assert "  - Unassigned mail gets a larger triage bonus" in result.output


def test_cli_normalize_config(runner, workspace):
    overrides = write_json(workspace / "overrides.json", {"email": {"unreadBonus": 30}})

    default = runner.invoke(app, ["normalize-config"])
    custom = runner.invoke(app, ["normalize-config", overrides])

    assert default.exit_code == 0
    assert '"unread_bonus":18' in default.output
    assert custom.exit_code == 0
    assert '"unread_bonus":30' in custom.output
