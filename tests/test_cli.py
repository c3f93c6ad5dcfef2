"""Tests for the command-line interface."""

from pathlib import Path

import pytest
from typer.testing import CliRunner

from recipeflow import __version__
from recipeflow.cli import app

runner = CliRunner()


class TestInfoCommands:
    def test_version(self) -> None:
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_models(self) -> None:
        result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "random_forest" in result.output
        assert "mars" in result.output

    def test_no_args_shows_help(self) -> None:
        result = runner.invoke(app, [])
        assert "Usage" in result.output


class TestValidate:
    """Tests for the validate command."""

    def test_valid_data(self, sample_yaml: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(sample_yaml)])
        assert result.exit_code == 0
        assert "ok" in result.output

    def test_missing_file(self, sample_yaml: Path, data_dir: Path) -> None:
        (data_dir / "pumpkins.csv").unlink()
        result = runner.invoke(app, ["validate", "--config", str(sample_yaml)])
        assert result.exit_code == 1
        assert "missing" in result.output

    def test_config_must_exist(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["validate", "--config", str(tmp_path / "nope.yaml")])
        assert result.exit_code != 0


class TestExploreAndRun:
    """Tests for explore and run on the pumpkins configuration."""

    def test_explore_writes_plots(self, sample_yaml: Path, tmp_path: Path) -> None:
        result = runner.invoke(app, ["explore", "--config", str(sample_yaml)])
        assert result.exit_code == 0, result.output
        plots = tmp_path / "output" / "pumpkins-test" / "plots"
        assert (plots / "pumpkins_weight.png").exists()

    def test_run(self, sample_yaml: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app,
            ["--log-level", "WARNING", "run", "--config", str(sample_yaml), "-j", "1"],
        )
        assert result.exit_code == 0, result.output
        assert "Running pumpkins analysis" in result.output
        reports = tmp_path / "output" / "pumpkins-test" / "reports"
        assert (reports / "pumpkins.html").exists()

    def test_run_without_report(self, sample_yaml: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["run", "--config", str(sample_yaml), "--no-report"]
        )
        assert result.exit_code == 0, result.output
        assert not (tmp_path / "output" / "pumpkins-test" / "reports").exists()

    @pytest.mark.parametrize(
        ("content", "message"),
        [
            ("analysis: pumpkins\n", "project"),
            ("project: x\nanalysis: pumpkins\ndata:\n  files: {}\n", "data.files"),
        ],
    )
    def test_invalid_config_exits_1(
        self, tmp_path: Path, content: str, message: str
    ) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(content)
        result = runner.invoke(app, ["run", "--config", str(path)])
        assert result.exit_code == 1
        assert message in result.output
