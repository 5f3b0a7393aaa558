import json

import pytest

from run_knapsack import main, show_knapsack
from knapsack_data_generator import Item


@pytest.fixture
def items_file(tmp_path):
    path = tmp_path / "items.json"
    path.write_text(json.dumps([
        {"name": "A", "weight": 2, "value": 3},
        {"name": "B", "weight": 3, "value": 4},
        {"name": "C", "weight": 4, "value": 5},
        {"name": "D", "weight": 5, "value": 6},
    ]), encoding="utf8")
    return str(path)


def test_show_knapsack_lists_included_items(capsys):
    show_knapsack([1, 0, 1], [Item("A", 2, 3), Item("B", 3, 4), Item("C", 4, 5)])
    out = capsys.readouterr().out
    assert " - A (Weight: 2.000000, Value: 3)" in out
    assert "B (" not in out
    assert "Total items included: 2" in out


def test_main_prints_report(items_file, capsys):
    assert main([items_file, "--max-weight", "5", "--seed", "3"]) == 0
    out = capsys.readouterr().out
    assert "Best solution: [" in out
    assert "List of items included in knapsack:" in out
    total = int(out.split("Total value: ")[1].splitlines()[0])
    assert total in {6, 7}
    assert "Execution time:" in out


def test_main_missing_file(tmp_path, capsys):
    assert main([str(tmp_path / "nope.json")]) == 1
    assert "Error while reading the file" in capsys.readouterr().err


def test_main_infeasible_configuration(items_file, capsys):
    code = main([items_file, "--max-weight", "-1", "--max-init-attempts", "3", "--seed", "0"])
    assert code == 1
    assert "no feasible initial solution" in capsys.readouterr().err


def test_main_accepts_unbounded_init_attempts(items_file, capsys):
    assert main([items_file, "--max-init-attempts", "none", "--seed", "5"]) == 0
    assert "Total value: " in capsys.readouterr().out


def test_main_reports_bad_environment(items_file, monkeypatch, capsys):
    monkeypatch.setenv("KNAPSACK_SEED", "abc")
    assert main([items_file]) == 1
    assert "KNAPSACK_SEED" in capsys.readouterr().err
