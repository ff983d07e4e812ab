"""Tests for the headless command-line runner."""

import logging

import pytest
import yaml

from galaxy_engine.cli.main import main
from galaxy_engine.utils.config import load_config
from galaxy_engine.utils.logging_config import setup_logging


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logging.getLogger("galaxy_engine").handlers.clear()


@pytest.fixture
def scene_file(tmp_path):
    path = tmp_path / "scene.yaml"
    data = {
        "seed": 3,
        "galaxies": [
            {"count": 25, "name": "a"},
            {"count": 15, "center": [1500.0, 600.0, 0.0], "bulk_velocity": [-0.01, -0.004, 0.0], "name": "b"},
        ],
    }
    path.write_text(yaml.safe_dump(data), encoding="utf-8")
    return path


def test_run_from_config(scene_file, tmp_path, capsys):
    """A short run exits cleanly and logs the diagnostics table."""
    out = tmp_path / "effective.json"
    status = main([
        "--config", str(scene_file),
        "--steps", "3",
        "--log-every", "1",
        "--dt", "50",
        "--profile",
        "--write-config", str(out),
    ])
    assert status == 0
    assert "Simulation complete" in capsys.readouterr().out

    written = load_config(str(out))
    assert written.dt == 50.0
    assert written.seed == 3
    assert len(written.galaxies) == 2


def test_run_with_barnes_hut(scene_file):
    assert main(["--config", str(scene_file), "--steps", "2", "--evaluator", "barnes_hut", "--theta", "0.7"]) == 0


def test_invalid_galaxy_returns_error(tmp_path, capsys):
    path = tmp_path / "bad.json"
    path.write_text('{"galaxies": [{"count": 0}]}', encoding="utf-8")
    assert main(["--config", str(path), "--steps", "1"]) == 1
    assert "Simulation failed" in capsys.readouterr().out


def test_argument_validation():
    with pytest.raises(SystemExit):
        main(["--steps", "-1"])
    with pytest.raises(SystemExit):
        main(["--log-every", "0"])


def test_setup_logging(tmp_path):
    log_file = tmp_path / "run.log"
    logger = setup_logging("debug", str(log_file))
    assert logger.name == "galaxy_engine"
    assert logger.level == logging.DEBUG
    assert len(logger.handlers) == 2
    # Calling again replaces handlers instead of stacking them
    setup_logging(logging.INFO)
    assert len(logger.handlers) == 1
    with pytest.raises(ValueError):
        setup_logging("chatty")


@pytest.mark.parametrize("galaxies", ['[5]', '[{"count": 10, "center": 5}]', '7'])
def test_malformed_galaxies_return_error(tmp_path, capsys, galaxies):
    """Malformed galaxy entries exit with status 1 instead of a traceback."""
    path = tmp_path / "bad.json"
    path.write_text('{"galaxies": %s}' % galaxies, encoding="utf-8")
    assert main(["--config", str(path), "--steps", "1"]) == 1
    assert "Simulation failed" in capsys.readouterr().out
