from typer.testing import CliRunner

from .__main__ import app

runner = CliRunner()


def test_run_prints_the_result():
    result = runner.invoke(app, ["run", "spawnio.samples.scenarios:answer"])
    assert result.exit_code == 0, result.output
    assert result.output == "42\n"


def test_run_passes_arguments():
    result = runner.invoke(
        app, ["run", "--generator", "spawnio.samples.scenarios:incremented", "5", "6"]
    )
    assert result.exit_code == 0, result.output
    assert result.output.split() == ["6", "7"]


def test_run_prints_events():
    result = runner.invoke(app, ["run", "--events", "spawnio.samples.scenarios:recover"])
    assert result.exit_code == 0, result.output
    assert "ComputationStarted" in result.output
    assert "ComputationSucceeded" in result.output


def test_run_rejects_malformed_targets():
    result = runner.invoke(app, ["run", "scenarios"])
    assert result.exit_code != 0
    assert isinstance(result.exception, ValueError)


def test_config(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("SPAWNIO_SCHEDULER", "loop")
    monkeypatch.setenv("SPAWNIO_TIMEOUT", "4")
    result = runner.invoke(app, ["config"])
    assert result.exit_code == 0, result.output
    assert result.output == "scheduler: loop\ntimeout: 4.0\n"
