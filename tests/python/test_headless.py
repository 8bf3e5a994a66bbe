import csv
import json

from crowdsim.app.headless import main, run_headless
from crowdsim.sim.core.config import SimulationConfig, SimulationParams


def _read_csv(path):
    with path.open(newline="") as handle:
        return list(csv.reader(handle))


def test_headless_log_header_and_rows(tmp_path):
    log_path = tmp_path / "frames.csv"
    run_headless(steps=3, seed=1, log_path=log_path, deterministic_log=True, params={"num_agents": 10})
    rows = _read_csv(log_path)
    assert len(rows) == 4
    assert rows[0] == [
        "frame",
        "population",
        "exited",
        "total_exited",
        "avg_speed",
        "jammed_agents",
        "jam_count",
        "frame_density",
        "max_density",
        "crowded_agents",
        "bottleneck_agents",
        "neighbor_checks",
        "tick_ms",
    ]
    assert [row[0] for row in rows[1:]] == ["1", "2", "3"]
    assert all(row[-1] == "0.000" for row in rows[1:])
    assert int(rows[1][1]) == 10


def test_deterministic_logs_match_for_same_seed(tmp_path):
    first = tmp_path / "a.csv"
    second = tmp_path / "b.csv"
    run_headless(steps=5, seed=4, log_path=first, deterministic_log=True)
    run_headless(steps=5, seed=4, log_path=second, deterministic_log=True)
    assert first.read_text() == second.read_text()


def test_headless_summary_with_evacuation_report(tmp_path):
    summary_path = tmp_path / "summary.json"
    config = SimulationConfig(params=SimulationParams(num_agents=0))
    summary = run_headless(
        steps=50,
        seed=3,
        deterministic_log=True,
        summary_path=summary_path,
        config=config,
        until_evacuated=True,
    )
    payload = json.loads(summary_path.read_text())
    assert payload == summary
    assert payload["frames_run"] == 1
    assert payload["evacuated"] is True
    assert payload["report"] == {
        "frames": 1,
        "seconds": 0.0,
        "max_density": 0.0,
        "jam_count": 0,
        "evacuated": 0,
    }


def test_headless_summary_without_evacuation(tmp_path):
    summary = run_headless(steps=2, seed=3, params={"num_agents": 6})
    assert summary["frames_run"] == 2
    assert summary["evacuated"] is False
    assert summary["report"] is None
    assert summary["remaining_agents"] == 6
    assert set(summary["average_speed"]) == {"mean", "min", "max"}


def test_cli_entry_point_applies_overrides(tmp_path):
    summary_path = tmp_path / "cli.json"
    main(
        [
            "--steps",
            "2",
            "--seed",
            "7",
            "--num-agents",
            "4",
            "--goal-weight",
            "2.5",
            "--summary",
            str(summary_path),
            "--log-level",
            "warning",
        ]
    )
    payload = json.loads(summary_path.read_text())
    assert payload["seed"] == 7
    assert payload["params"]["num_agents"] == 4
    assert payload["params"]["goal_weight"] == 2.5


def test_run_headless_leaves_caller_config_untouched():
    config = SimulationConfig(seed=3, params=SimulationParams(num_agents=5))
    summary = run_headless(steps=1, seed=99, config=config, params={"num_agents": 2})
    assert summary["seed"] == 99
    assert summary["initial_agents"] == 2
    assert config.seed == 3
    assert config.params.num_agents == 5
