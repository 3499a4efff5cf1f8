"""
Test digest run orchestration.
"""
import json
import pytest
from datetime import datetime, timezone
from triage_core.config import CONFIG_PATH_ENV, Config
from triage_core.observability.metrics import MetricsCollector
from triage_core.run import load_snapshot, resolve_now, run_digest

PROJECT = {
    "project": {"id": "p1", "name": "Spring Tour"},
    "tasks": [{"id": "t1", "title": "Sign rider", "dueAt": "2024-03-08T12:00:00Z"}],
    "timelineItems": [
        {"id": "i1", "title": "Soundcheck", "lane": "Live",
         "startsAt": "2024-03-12T10:00:00Z", "endsAt": "2024-03-12T11:00:00Z"},
        {"id": "i2", "title": "Interview", "lane": "Live",
         "startsAt": "2024-03-12T10:30:00Z", "endsAt": "2024-03-12T11:30:00Z"},
    ],
    "emails": [{"id": "m1", "subject": "Contract", "category": "LEGAL/Contract_Draft"}],
}


@pytest.fixture
def workspace(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv(CONFIG_PATH_ENV, raising=False)
    return tmp_path


def write_snapshot(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestRunDigest:
    """Test the end-to-end digest run."""

    def test_writes_json_and_markdown(self, workspace):
        """Test that a run writes both digest files dated by the snapshot's now."""
        snapshot = write_snapshot(workspace / "snapshot.json", {"now": "2024-03-10T12:00:00Z", "projects": [PROJECT]})
        metrics = MetricsCollector()

        payload = run_digest(snapshot, workspace / "out", metrics=metrics)

        json_path = workspace / "out" / "digest-2024-03-10.json"
        md_path = workspace / "out" / "digest-2024-03-10.md"
        assert json_path.exists()
        assert md_path.exists()
        data = json.loads(json_path.read_text(encoding="utf-8"))
        assert data["generated_at"] == payload.generated_at
        assert data["top_actions"][0]["id"] == "email:m1"
        assert "# Daily digest - 2024-03-10" in md_path.read_text(encoding="utf-8")

    def test_records_metrics(self, workspace):
        snapshot = write_snapshot(workspace / "snapshot.json", [PROJECT])
        metrics = MetricsCollector()

        payload = run_digest(snapshot, workspace / "out", "2024-03-10T12:00:00Z", metrics=metrics)

        assert [conflict["kind"] for conflict in payload.projects[0].conflicts] == ["lane_overlap"]
        assert metrics.sample_value("runs_total", status="ok") == 1.0
        assert metrics.sample_value("entities_scored_total", entity_type="task") == 1.0
        assert metrics.sample_value("entities_scored_total", entity_type="email") == 1.0
        assert metrics.sample_value("entities_scored_total", entity_type="timeline") == 2.0
        assert metrics.sample_value("conflicts_detected_total", kind="lane_overlap", severity="warning") == 1.0
        assert metrics.sample_value("digest_build_seconds_count") == 1.0

    def test_explicit_now_wins(self, workspace):
        snapshot = write_snapshot(workspace / "snapshot.json", {"now": "2024-03-10T12:00:00Z", "projects": []})

        run_digest(snapshot, workspace / "out", "2024-04-01T08:00:00Z", metrics=MetricsCollector())

        assert (workspace / "out" / "digest-2024-04-01.json").exists()

    def test_without_markdown(self, workspace):
        snapshot = write_snapshot(workspace / "snapshot.json", [PROJECT])

        run_digest(snapshot, workspace / "out", "2024-03-10T12:00:00Z",
                   metrics=MetricsCollector(), write_markdown=False)

        assert (workspace / "out" / "digest-2024-03-10.json").exists()
        assert not (workspace / "out" / "digest-2024-03-10.md").exists()

    def test_config_limits(self, workspace):
        snapshot = write_snapshot(workspace / "snapshot.json", [PROJECT])
        config = Config(digest={"per_project_limit": 1, "top_action_limit": 1})

        payload = run_digest(snapshot, workspace / "out", "2024-03-10T12:00:00Z",
                             config=config, metrics=MetricsCollector())

        assert len(payload.top_actions) == 1
        assert len(payload.projects[0].top_actions) == 1

    def test_failed_run(self, workspace):
        """Test that a bad snapshot is re-raised and counted as a failed run."""
        snapshot = write_snapshot(workspace / "snapshot.json", {"items": []})
        metrics = MetricsCollector()

        with pytest.raises(ValueError, match="projects"):
            run_digest(snapshot, workspace / "out", metrics=metrics)

        assert metrics.sample_value("runs_total", status="failed") == 1.0
        assert metrics.sample_value("runs_total", status="ok") == 0.0


class TestSnapshotHelpers:
    """Test snapshot loading and reference time resolution."""

    def test_list_snapshot(self, workspace):
        path = write_snapshot(workspace / "snapshot.json", [PROJECT])
        assert load_snapshot(path) == {"projects": [PROJECT]}

    def test_object_snapshot(self, workspace):
        data = {"now": "2024-03-10T12:00:00Z", "projects": [PROJECT]}
        path = write_snapshot(workspace / "snapshot.json", data)
        assert load_snapshot(path) == data

    def test_invalid_snapshot(self, workspace):
        path = write_snapshot(workspace / "snapshot.json", {"projects": "p1"})
        with pytest.raises(ValueError):
            load_snapshot(path)

    def test_resolve_now(self):
        assert resolve_now("2024-03-10T12:00:00Z") == datetime(2024, 3, 10, 12, tzinfo=timezone.utc)
        assert resolve_now("now").tzinfo is not None
        assert resolve_now(None).tzinfo is not None

    def test_resolve_now_invalid(self):
        with pytest.raises(ValueError, match="Invalid timestamp"):
            resolve_now("tomorrow-ish")
