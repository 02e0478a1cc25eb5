from __future__ import annotations

import pandas as pd

import lfocache.sim.cli as cli
from lfocache.sim.trace import write_trace
from lfocache.sim.utils import synthetic_trace


def test_cli_end_to_end(tmp_path, monkeypatch, fake_learner, capsys):
    trace = tmp_path / "small.tr"
    write_trace(synthetic_trace(n_req=350, n_objects=40, seed=3), str(trace))
    result = tmp_path / "out" / "small.result"
    monkeypatch.setattr(cli, "get_learner", lambda name, params: fake_learner)

    rc = cli.main([
        str(trace), "65536", "100", "0.5",
        "--config", str(tmp_path / "none.yaml"),
        "--result-file", str(result),
        "--telemetry-dir", str(tmp_path / "telemetry"),
    ])
    assert rc == 0
    lines = result.read_text().splitlines()
    assert lines[1] == "small.tr 65536 100 0.5"
    assert sum(1 for l in lines if l.startswith("Start processing window")) == 3
    assert lines.count("Refit existing booster") == 2
    assert len(pd.read_csv(tmp_path / "telemetry" / "windows.csv")) == 3
    assert "Processed 3 windows" in capsys.readouterr().out


def test_cli_learner_failure_exit_code(tmp_path, monkeypatch, learner_factory, capsys):
    trace = tmp_path / "small.tr"
    write_trace(synthetic_trace(n_req=200, n_objects=40, seed=3), str(trace))
    monkeypatch.setattr(cli, "get_learner", lambda name, params: learner_factory(fail_stage="predict"))
    rc = cli.main([str(trace), "65536", "100", "0.5", "--config", str(tmp_path / "none.yaml"),
                   "--result-file", str(tmp_path / "r.txt")])
    assert rc == 1
    assert "learner predict failed in window 2" in capsys.readouterr().err


def test_cli_synthetic_retrain(tmp_path, monkeypatch, fake_learner):
    monkeypatch.setattr(cli, "get_learner", lambda name, params: fake_learner)
    result = tmp_path / "syn.result"
    rc = cli.main(["--synthetic", "250", "--window-size", "100", "--cache-size", "4096", "--update", "retrain",
                   "--config", str(tmp_path / "none.yaml"), "--result-file", str(result)])
    assert rc == 0
    assert "Train a new booster" in result.read_text()


def test_cli_keeps_opt_line_of_failed_window(tmp_path, monkeypatch, learner_factory):
    trace = tmp_path / "small.tr"
    write_trace(synthetic_trace(n_req=200, n_objects=40, seed=3), str(trace))
    result = tmp_path / "r.txt"
    monkeypatch.setattr(cli, "get_learner", lambda name, params: learner_factory(fail_stage="predict"))
    rc = cli.main([str(trace), "65536", "100", "0.5", "--config", str(tmp_path / "none.yaml"),
                   "--result-file", str(result)])
    assert rc == 1
    lines = result.read_text().splitlines()
    assert any(l.startswith("Start processing window 2") for l in lines)
    assert not any(l.startswith("Finish processing window 2") for l in lines)
    assert sum(1 for l in lines if l.startswith("65536 100 ")) == 2


def test_cli_rejects_sequence_gap(tmp_path, monkeypatch, fake_learner, capsys):
    trace = tmp_path / "gap.tr"
    trace.write_text("1 1 10 1.0\n3 1 10 1.0\n")
    monkeypatch.setattr(cli, "get_learner", lambda name, params: fake_learner)
    rc = cli.main([str(trace), "64", "4", "0.5", "--config", str(tmp_path / "none.yaml"),
                   "--result-file", str(tmp_path / "r.txt")])
    assert rc == 1
    assert "seq 3" in capsys.readouterr().err
