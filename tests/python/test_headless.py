import csv
import json

import pytest

from cat_arena.app.headless import run_headless


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_basic_log_header(tmp_path):
    log_path = tmp_path / "basic.csv"
    run_headless(steps=2, seed=1, log_path=log_path, deterministic_log=True, log_format="basic")
    rows = _read_csv(log_path)
    assert len(rows) == 3
    assert rows[0] == [
        "tick",
        "population",
        "calm",
        "hissing",
        "fighting",
        "pair_checks",
        "move_attempts",
        "stalled",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["1", "2"]


def test_headless_detailed_log_ratios(tmp_path):
    log_path = tmp_path / "detailed.csv"
    run_headless(steps=3, seed=2, log_path=log_path, deterministic_log=True, log_format="detailed")
    rows = _read_csv(log_path)
    assert len(rows) == 4
    header = rows[0]
    idx = {name: i for i, name in enumerate(header)}
    for name in ["calm_ratio", "hissing_ratio", "fighting_ratio", "min_pair_distance", "mean_nearest_distance"]:
        assert name in idx

    first_row = rows[1]
    population = int(first_row[idx["population"]])
    fighting = int(first_row[idx["fighting"]])
    calm = int(first_row[idx["calm"]])
    hissing = int(first_row[idx["hissing"]])
    assert calm + hissing + fighting == population
    assert float(first_row[idx["fighting_ratio"]]) == pytest.approx(fighting / population, abs=1e-4)
    assert float(first_row[idx["tick_ms"]]) == 0.0
    # Cats never overlap, so nearest neighbours are at least one diameter apart.
    assert float(first_row[idx["min_pair_distance"]]) >= 20.0 - 1e-4


def test_deterministic_logs_match_for_the_same_seed(tmp_path):
    first = tmp_path / "first.csv"
    second = tmp_path / "second.csv"
    run_headless(steps=5, seed=9, log_path=first, deterministic_log=True)
    run_headless(steps=5, seed=9, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_output(tmp_path):
    summary_path = tmp_path / "summary.json"
    run_headless(
        steps=4,
        seed=3,
        log_path=None,
        deterministic_log=True,
        log_format="basic",
        summary_path=summary_path,
        summary_window=2,
    )
    payload = json.loads(summary_path.read_text())
    assert payload["steps"] == 4
    assert payload["seed"] == 3
    assert payload["log_format"] == "basic"
    assert payload["stalled_moves"] == 0
    assert "fighting" in payload
    assert "move_attempts" in payload
    assert payload["tail_window"]["window"] == 2


def test_headless_reads_yaml_config(tmp_path):
    config_path = tmp_path / "small.yaml"
    config_path.write_text("population: 5\nseed: 10\nagent_size: 5.0\narena:\n  width: 200.0\n  height: 200.0\n")
    world = run_headless(steps=2, seed=None, log_path=None, config_path=config_path)
    assert len(world.agents) == 5
    assert world.config.seed == 10
    assert world.tick_count == 2


def test_headless_rejects_unknown_log_format(tmp_path):
    with pytest.raises(ValueError):
        run_headless(steps=1, seed=1, log_path=tmp_path / "x.csv", log_format="verbose")
