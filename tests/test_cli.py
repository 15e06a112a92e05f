"""Tests for the command-line interface."""

import csv
from pathlib import Path

from typer.testing import CliRunner

from maintplan.cli import app

runner = CliRunner()

EXAMPLE_PLAN = Path(__file__).parent.parent / "examples" / "plan.yaml"


class TestSchedule:
    """Test the schedule command."""

    def test_display(self) -> None:
        result = runner.invoke(app, ["schedule", str(EXAMPLE_PLAN)])

        assert result.exit_code == 0
        assert "Schedule for MP-2024-001 Cooling water pump overhaul" in result.output
        assert "* 2024-03-05 13:45 -> 2024-03-05 16:45  WO-1002-T1" in result.output
        assert "[SAFETY] Lock-out tag-out" in result.output

    def test_csv_export(self, tmp_path: Path) -> None:
        output = tmp_path / "schedule.csv"
        result = runner.invoke(app, ["schedule", str(EXAMPLE_PLAN), "--output-csv", str(output)])

        assert result.exit_code == 0
        assert f"Schedule exported to {output}" in result.output

        with output.open(newline="") as f:
            rows = list(csv.DictReader(f))
        assert len(rows) == 6
        first = rows[0]
        assert first["id"] == "t-isolate_S1"
        assert first["start"] == "2024-03-04T08:00:00"
        assert first["assigned_to"] == "u-sam"
        assert first["is_safety_task"] == "True"
        assert first["critical"] == "True"

    def test_verbose_logs_placements(self) -> None:
        result = runner.invoke(app, ["-v", "1", "schedule", str(EXAMPLE_PLAN)])
        assert result.exit_code == 0
        assert "Scheduled task t-overhaul" in result.output

    def test_missing_file(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["schedule", str(tmp_path / "nope.yaml")])
        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_plan_without_dates(self, tmp_path: Path) -> None:
        path = tmp_path / "plan.yaml"
        path.write_text("plan:\n  id: p\n")
        result = runner.invoke(app, ["schedule", str(path)])
        assert result.exit_code == 1
        assert "start or end date" in result.output

    def test_bad_config(self, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("")
        result = runner.invoke(app, ["-c", str(config), "schedule", str(EXAMPLE_PLAN)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_explicit_config_is_used(self, tmp_path: Path) -> None:
        config = tmp_path / "config.yaml"
        config.write_text("scheduler:\n  max_task_hours: 1\n")
        output = tmp_path / "schedule.csv"
        result = runner.invoke(
            app, ["-c", str(config), "schedule", str(EXAMPLE_PLAN), "--output-csv", str(output)]
        )
        assert result.exit_code == 0

        with output.open(newline="") as f:
            ends = {row["id"]: row["end"] for row in csv.DictReader(f)}
        # Two hours of isolation cut to one
        assert ends["t-isolate"] == "2024-03-04T09:45:00"


class TestValidate:
    """Test the readiness checklist."""

    def test_ready_plan(self) -> None:
        result = runner.invoke(app, ["validate", str(EXAMPLE_PLAN), "--today", "2024-03-01"])

        assert result.exit_code == 0
        assert "Readiness Checklist" in result.output
        assert "[!!] Spares in stock (warning only)" in result.output
        assert "[OK] Spares delivered in time" in result.output
        assert "Can commit: yes" in result.output

    def test_late_spares_fail(self) -> None:
        result = runner.invoke(app, ["validate", str(EXAMPLE_PLAN), "--today", "2024-03-10"])

        assert result.exit_code == 1
        assert "[!!] Spares delivered in time" in result.output
        assert "Can commit: no" in result.output

    def test_bad_date(self) -> None:
        result = runner.invoke(app, ["validate", str(EXAMPLE_PLAN), "--today", "yesterday"])
        assert result.exit_code == 1
        assert "Use YYYY-MM-DD format" in result.output


class TestResources:
    def test_loading(self) -> None:
        result = runner.invoke(app, ["resources", str(EXAMPLE_PLAN)])

        assert result.exit_code == 0
        assert "Resource Loading" in result.output
        assert "Alex Fitter (u-alex)" in result.output
        assert "Assigned: 12h of 24h (50%)" in result.output
        assert "DOUBLE ALLOCATED" not in result.output


class TestCost:
    def test_total(self) -> None:
        result = runner.invoke(app, ["cost", str(EXAMPLE_PLAN)])

        assert result.exit_code == 0
        assert "Estimated Spares Cost" in result.output
        assert "Total: 2691.00" in result.output
