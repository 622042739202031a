"""
Tests for the command line interface.
"""

import json

import numpy as np
import pytest
import soundfile as sf

from grainfield import __version__
from grainfield.cli import main
from grainfield.monitoring import LogLevel, get_logger
from grainfield.monitoring import logging as logging_module


@pytest.fixture(autouse=True)
def fresh_global_logger(monkeypatch):
    monkeypatch.setattr(logging_module, "_global_logger", None)


class TestVersion:
    """Tests for the version command."""

    def test_prints_version(self, capsys):
        assert main(["version"]) == 0
        assert __version__ in capsys.readouterr().out

    def test_no_command(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestIr:
    """Tests for the ir command."""

    def test_json(self, capsys):
        code = main([
            "ir", "--path", "0", "0", "0",
            "-r", "a=0,0", "-r", "b=10,0",
            "--speed", "5", "--json",
        ])

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["min_time"] == 0.0
        assert data["receivers"]["a"] == [[0.0, 1.0]]
        assert data["receivers"]["b"][0][0] == 2.0

    def test_text(self, capsys):
        assert main(["ir", "--path", "0", "0", "0", "-r", "a=3,4"]) == 0
        out = capsys.readouterr().out
        assert "Path 0" in out
        assert "a (1 taps" in out

    def test_bad_path(self, capsys):
        assert main(["ir", "--path", "0", "0", "-r", "a=0,0"]) == 1
        assert "Error:" in capsys.readouterr().err

    def test_config_file(self, tmp_path, capsys):
        config = tmp_path / "node.json"
        config.write_text(json.dumps({"propagation": {"speed": 10.0}}))

        main(["ir", "--path", "0", "0", "0", "-r", "a=10,0", "--config", str(config), "--json"])
        data = json.loads(capsys.readouterr().out)
        assert data["receivers"]["a"][0][0] == 1.0

    def test_config_sets_up_logging(self, tmp_path, capsys):
        config = tmp_path / "node.json"
        config.write_text(json.dumps({"node_id": "coord", "log_level": "debug", "log_json": False}))

        main(["ir", "--path", "0", "0", "0", "-r", "a=0,0", "--config", str(config)])
        logger = get_logger()
        assert logger.level == LogLevel.DEBUG
        assert logger.node_id == "coord"


class TestRenderPath:
    """Tests for the render-path command."""

    def test_writes_one_file_per_receiver(self, tmp_path, capsys):
        source = tmp_path / "input.wav"
        sf.write(str(source), np.full(800, 0.5, dtype=np.float32), 8000)
        out_dir = tmp_path / "out"

        code = main([
            "render-path", str(source),
            "--path", "0", "0", "0",
            "-r", "a=0,0", "-r", "b=2,0",
            "-o", str(out_dir),
            "--no-loop",
        ])

        assert code == 0
        data, sample_rate = sf.read(str(out_dir / "a.wav"))
        assert sample_rate == 8000
        assert np.max(np.abs(data)) <= 1.0
        assert (out_dir / "b.wav").exists()
        assert "a: 1 taps" in capsys.readouterr().out

    def test_missing_input(self, tmp_path, capsys):
        code = main([
            "render-path", str(tmp_path / "nope.wav"),
            "--path", "0", "0", "0", "-r", "a=0,0",
        ])
        assert code == 1
        assert "not loaded" in capsys.readouterr().err
