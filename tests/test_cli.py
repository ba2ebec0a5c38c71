"""Tests for the batch driver and its presentation helpers."""

import argparse

import pytest

from cli import main, parse_terminate
from engine import AllocatorConfig, MemoryEngine, ProcessRequest
from utils import FREE_COLOR, block_rows, get_color, process_rows

WORKLOAD = """100
# id size
1 30
2 20
3 15
4 25
5 10
"""


@pytest.fixture
def workload_file(tmp_path):
    path = tmp_path / "input.txt"
    path.write_text(WORKLOAD)
    return path


class TestMain:
    """Test cases for the partition-sim command."""

    def test_full_run(self, workload_file, capsys):
        code = main([
            str(workload_file),
            "--initial", "3",
            "--terminate", "2",
            "--more", "1",
            "--large-percent", "50",
        ])
        out = capsys.readouterr().out

        assert code == 0
        assert "Memory size: 100" in out
        assert "=== Summary of Allocation Methods ===" in out
        for name in ("First-Fit", "Best-Fit", "Worst-Fit"):
            assert f"=== {name} Strategy Simulation ===" in out
        assert "Success Rate: 100.0% (5/5)" in out

    def test_single_strategy(self, workload_file, capsys):
        code = main([str(workload_file), "--strategy", "Best-Fit", "--terminate", "all"])
        out = capsys.readouterr().out

        assert code == 0
        assert "Best-Fit Strategy Simulation" in out
        assert "First-Fit Strategy Simulation" not in out

    def test_missing_file(self, tmp_path, capsys):
        code = main([str(tmp_path / "nope.txt")])
        assert code == 1
        assert "Failed to read processes" in capsys.readouterr().err

    def test_invalid_workload(self, tmp_path, capsys):
        path = tmp_path / "bad.txt"
        path.write_text("zero\n1 10\n")
        assert main([str(path)]) == 1

    def test_bad_terminate_argument(self, workload_file):
        with pytest.raises(SystemExit):
            main([str(workload_file), "--terminate", "some"])

    def test_bad_large_percent(self, workload_file):
        with pytest.raises(SystemExit):
            main([str(workload_file), "--large-percent", "150"])


class TestParseTerminate:
    def test_all(self):
        assert parse_terminate(["all"]) == (True, ())

    def test_ids(self):
        assert parse_terminate(["1", "4"]) == (False, (1, 4))

    def test_invalid(self):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_terminate(["x"])


class TestUtils:
    """Test cases for the table and colour helpers."""

    def test_free_blocks_are_grey(self):
        assert get_color(True) == FREE_COLOR
        assert get_color(True, 3) == FREE_COLOR

    def test_process_keeps_its_colour(self):
        assert get_color(False, 7) == get_color(False, 7)
        assert get_color(False, 7) != get_color(False, 8)

    def test_rows(self):
        engine = MemoryEngine(AllocatorConfig(100))
        running, waiting = ProcessRequest(1, 40), ProcessRequest(2, 10)
        engine.allocate(running)

        assert block_rows(engine.get_state()) == [
            {"start": 0, "size": 40, "status": "Allocated", "process": "P1"},
            {"start": 40, "size": 60, "status": "Free", "process": "-"},
        ]
        rows = process_rows([running, waiting], engine)
        assert rows[0]["location"] == 0
        assert rows[1]["location"] == "N/A"
        assert rows[1]["status"] == "New"
