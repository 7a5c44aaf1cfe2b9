"""
Minimal smoke tests for the lift-analytics CLI.

Tests basic functionality:
- App runs without errors
- Analysis commands read the history file
- Broken or missing files exit with an error
- A program can be created, followed, and archived
"""

import json
import tempfile
from pathlib import Path

import pytest
from typer.testing import CliRunner

from lift_analytics.cli.main import app


runner = CliRunner()

BENCH = "Bench Press (Barbell)"


def _session_line(session_id: str, started_at: str, weight: float, reps: int, name: str = "Upper A") -> str:
    return json.dumps({
        "id": session_id,
        "started_at": started_at,
        "name": name,
        "duration": "1h 5m",
        "exercises": [
            {"name": BENCH, "sets": [{"weight": weight - 10, "reps": reps}, {"weight": weight, "reps": reps}]},
            {"name": "Squat", "sets": [{"weight": 100, "reps": 5}]},
        ],
    })


@pytest.fixture
def data_dir():
    """Temporary data directory with a short history."""
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir)
        lines = [
            _session_line("a", "2024-01-01T18:00:00", 100, 5),
            _session_line("b", "2024-01-02T18:00:00", 100, 6),
            _session_line("c", "2024-01-04T18:00:00", 102.5, 5),
            _session_line("d", "2024-02-26T18:00:00", 110, 5),
        ]
        (path / "history.jsonl").write_text("\n".join(lines) + "\n", encoding="utf-8")
        yield path


def _invoke(*args: str):
    return runner.invoke(app, list(args))


class TestCLISmoke:
    """Basic smoke tests for the analysis commands."""

    def test_app_help(self):
        result = _invoke("--help")
        assert result.exit_code == 0
        assert "program" in result.output

    def test_streaks_json(self, data_dir):
        result = _invoke("streaks", "-d", str(data_dir), "--rest-days", "1", "--date", "2024-01-05", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["current"]["start"] == "2024-01-01"
        assert data["current"]["day_count"] == 3
        assert len(data["runs"]) == 2

    def test_streaks_table(self, data_dir):
        result = _invoke("streaks", "-d", str(data_dir), "--date", "2024-03-30")
        assert result.exit_code == 0
        assert "No active streak" in result.output

    def test_changes_with_date(self, data_dir):
        result = _invoke("changes", "-d", str(data_dir), "--date", "2024-01-04", "--window", "14", "--json")
        assert result.exit_code == 0
        metrics = {m["title"]: m for m in json.loads(result.output)["metrics"]}
        assert metrics["Sessions"]["current"] == 3
        assert metrics["Sessions"]["previous"] == 0
        assert metrics["Sessions"]["percent_change"] is None
        assert metrics["Avg Duration"]["current"] == 65.0

    def test_changes_without_enough_data(self, data_dir):
        # latest session 02-26; the previous 7 days are empty
        result = _invoke("changes", "-d", str(data_dir), "--window", "7", "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) == {"window": None, "metrics": []}

    def test_contributions_json(self, data_dir):
        (data_dir / "muscle_tags.yaml").write_text(f'"{BENCH}": [chest, triceps]\nSquat: [quads]\n')
        result = _invoke("contributions", "-d", str(data_dir), "--weeks", "4", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        bench = next(c for c in data["contributions"] if c["subject"] == BENCH)
        assert bench["delta"] == pytest.approx(7.5)
        assert any(c["subject"] == "chest" for c in data["gainers"])

    def test_trend(self, data_dir):
        result = _invoke("trend", BENCH, "-d", str(data_dir), "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert len(data["points"]) == 4
        assert data["direction"] == "improving"

    def test_readiness_from_wellness(self, data_dir):
        (data_dir / "wellness.json").write_text(json.dumps([{"day": "2024-03-04", "readiness_score": 35}]))
        result = _invoke("readiness", "-d", str(data_dir), "--date", "2024-03-04", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["band"] == "low"
        assert data["source"] == "wellness"
        assert "multiplier" not in data

    def test_mixed_timestamp_forms(self, data_dir):
        with open(data_dir / "history.jsonl", "a", encoding="utf-8") as f:
            f.write(_session_line("e", "2024-02-27T09:00:00+00:00", 112.5, 5) + "\n")
        for args in (
            ("changes", "--json"),
            ("changes", "--date", "2024-02-27", "--json"),
            ("contributions", "--json"),
            ("trend", BENCH, "--json"),
        ):
            result = _invoke(*args, "-d", str(data_dir))
            assert result.exit_code == 0, (args, result.output)

    def test_metric_preferences_change_trend_unit(self, data_dir):
        (data_dir / "metric_preferences.yaml").write_text("Squat: count\n")
        result = _invoke("trend", "Squat", "-d", str(data_dir), "--json")
        assert result.exit_code == 0
        assert [p["value"] for p in json.loads(result.output)["points"]] == [5, 5, 5, 5]

    def test_invalid_metric_preference_exits(self, data_dir):
        (data_dir / "metric_preferences.yaml").write_text("Squat: laps\n")
        result = _invoke("contributions", "-d", str(data_dir))
        assert result.exit_code == 1
        assert "Invalid metric" in result.output

    def test_missing_history_exits(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            result = _invoke("streaks", "-d", tmpdir)
        assert result.exit_code == 1
        assert "History file not found" in result.output

    def test_invalid_history_line_exits(self, data_dir):
        with open(data_dir / "history.jsonl", "a", encoding="utf-8") as f:
            f.write("{not json}\n")
        result = _invoke("streaks", "-d", str(data_dir))
        assert result.exit_code == 1
        assert "line 5" in result.output


class TestProgramCommands:
    """Program lifecycle through the CLI; state persists in programs.json."""

    def _create(self, data_dir: Path, goal: str = "hypertrophy") -> dict:
        result = _invoke(
            "program", "create",
            "-d", str(data_dir),
            "--goal", goal,
            "--days-per-week", "4",
            "--start", "2024-03-04",
            "--json",
        )
        assert result.exit_code == 0, result.output
        return json.loads(result.output)

    def test_create_persists_plan(self, data_dir):
        plan = self._create(data_dir)
        assert plan["split"] == "upper_lower"
        assert len(plan["days"]) == 32
        saved = json.loads((data_dir / "programs.json").read_text())
        assert saved["active"]["id"] == plan["id"]

    def test_invalid_goal(self, data_dir):
        result = _invoke("program", "create", "-d", str(data_dir), "--goal", "bulk")
        assert result.exit_code == 1
        assert "Invalid goal" in result.output

    def test_today_applies_readiness(self, data_dir):
        self._create(data_dir)
        (data_dir / "wellness.json").write_text(json.dumps([{"day": "2024-03-04", "readiness_score": 85}]))
        result = _invoke("program", "today", "-d", str(data_dir), "--date", "2024-03-04", "--json")
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["readiness"]["band"] == "high"
        planned = next(t for t in data["planned"] if t["exercise_name"] == BENCH)
        adjusted = next(t for t in data["adjusted"] if t["exercise_name"] == BENCH)
        # last top set 110 → week 1 × 0.95 = 104.5 → 105; high adds 2.5
        assert planned["target_weight"] == 105.0
        assert adjusted["target_weight"] == 107.5

    def test_policy_load_adjustment_changes_today(self, data_dir):
        (data_dir / "policy.yaml").write_text("load_adjustment:\n  high_increment_steps: 2\n")
        self._create(data_dir)
        (data_dir / "wellness.json").write_text(json.dumps([{"day": "2024-03-04", "readiness_score": 85}]))
        data = json.loads(_invoke("program", "today", "-d", str(data_dir), "--date", "2024-03-04", "--json").output)
        adjusted = next(t for t in data["adjusted"] if t["exercise_name"] == BENCH)
        # 105 + 2 × 2.5
        assert adjusted["target_weight"] == 110.0

    def test_policy_progression_applies_to_new_plans(self, data_dir):
        (data_dir / "policy.yaml").write_text(
            "progression:\n  weight_increment: 1.25\n  miss_threshold: 5\n  deload_percent: 0.2\n"
        )
        plan = self._create(data_dir)
        assert plan["progression_rule"] == {"weight_increment": 1.25, "miss_threshold": 5, "deload_percent": 0.2}

        result = _invoke(
            "program", "create", "-d", str(data_dir), "--start", "2024-03-04", "--increment", "5", "--json"
        )
        assert json.loads(result.output)["progression_rule"]["weight_increment"] == 5.0

    def test_today_without_program(self, data_dir):
        result = _invoke("program", "today", "-d", str(data_dir))
        assert result.exit_code == 1
        assert "No active program" in result.output

    def test_complete_adapts_future_days(self, data_dir):
        plan = self._create(data_dir)
        with open(data_dir / "history.jsonl", "a", encoding="utf-8") as f:
            f.write(_session_line("e", "2024-03-04T18:00:00", 105, 12) + "\n")

        result = _invoke("program", "complete", "e", "-d", str(data_dir))
        assert result.exit_code == 0, result.output
        assert "Completed w1d1" in result.output

        saved = json.loads((data_dir / "programs.json").read_text())["active"]
        week2 = next(d for d in saved["days"] if d["id"] == f"{plan['id']}-w2d1")
        bench = next(t for t in week2["exercises"] if t["exercise_name"] == BENCH)
        assert bench["target_weight"] == 107.5

    def test_complete_unknown_session(self, data_dir):
        self._create(data_dir)
        result = _invoke("program", "complete", "nope", "-d", str(data_dir))
        assert result.exit_code == 1

    def test_skip_move_reset_by_short_day_id(self, data_dir):
        plan = self._create(data_dir)
        assert _invoke("program", "skip", "w1d2", "-d", str(data_dir)).exit_code == 0
        assert _invoke("program", "move", "w1d3", "--to", "2024-03-10", "-d", str(data_dir)).exit_code == 0

        days = {d["id"]: d for d in json.loads((data_dir / "programs.json").read_text())["active"]["days"]}
        assert days[f"{plan['id']}-w1d2"]["state"] == "skipped"
        assert days[f"{plan['id']}-w1d3"]["scheduled_date"] == "2024-03-10"

        assert _invoke("program", "reset", "w1d3", "-d", str(data_dir)).exit_code == 0
        days = {d["id"]: d for d in json.loads((data_dir / "programs.json").read_text())["active"]["days"]}
        assert days[f"{plan['id']}-w1d3"]["scheduled_date"] == "2024-03-07"

    def test_skip_unknown_day(self, data_dir):
        self._create(data_dir)
        result = _invoke("program", "skip", "w9d9", "-d", str(data_dir))
        assert result.exit_code == 1

    def test_archive_restore_delete(self, data_dir):
        first = self._create(data_dir)
        second = self._create(data_dir, goal="strength")

        listing = json.loads(_invoke("program", "list", "-d", str(data_dir), "--json").output)
        assert listing["active"]["id"] == second["id"]
        assert [p["id"] for p in listing["archived"]] == [first["id"]]

        result = _invoke("program", "restore", first["id"][:8], "-d", str(data_dir))
        assert result.exit_code == 0, result.output
        assert _invoke("program", "archive", "-d", str(data_dir)).exit_code == 0

        result = _invoke("program", "delete", second["id"], "--force", "-d", str(data_dir))
        assert result.exit_code == 0
        saved = json.loads((data_dir / "programs.json").read_text())
        assert saved["active"] is None
        assert [p["id"] for p in saved["archived"]] == [first["id"]]

        result = _invoke("program", "delete", "missing", "--force", "-d", str(data_dir))
        assert result.exit_code == 1

    def test_list_and_show_tables(self, data_dir):
        self._create(data_dir)
        assert _invoke("program", "list", "-d", str(data_dir)).exit_code == 0
        result = _invoke("program", "show", "-d", str(data_dir), "--week", "1", "--date", "2024-03-05")
        assert result.exit_code == 0
        assert "Adherence to date: 0%" in result.output
