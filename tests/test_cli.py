"""CLI tests for the VMR command line."""

import json
import os
from pathlib import Path
from typing import Callable, Dict, List
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner, Result

from video_model_registry.cli import app
from video_model_registry.cli.utils.helpers import ExitCode
from video_model_registry.config_paths import ENV_FAL_API_KEY


@pytest.fixture
def cli_runner() -> CliRunner:
    """Create a Click CLI runner for testing."""
    return CliRunner()


@pytest.fixture
def invoke(cli_runner: CliRunner, data_files: Dict[str, Path]) -> Callable[..., Result]:
    """Run the CLI against the test data files with JSON output."""

    def _invoke(*args: str, fmt: str = "json") -> Result:
        base: List[str] = [
            "--format",
            fmt,
            "--models-path",
            str(data_files["models"]),
            "--pricing-path",
            str(data_files["pricing"]),
        ]
        return cli_runner.invoke(app, base + list(args))

    return _invoke


class TestGlobalOptions:
    def test_version(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, ["--version"])
        assert result.exit_code == ExitCode.SUCCESS
        assert "VMR CLI version" in result.output

    def test_no_command_shows_help(self, cli_runner: CliRunner) -> None:
        result = cli_runner.invoke(app, [])
        assert result.exit_code == ExitCode.SUCCESS
        assert "models" in result.output

    def test_missing_data_file(self, cli_runner: CliRunner, tmp_path: Path) -> None:
        result = cli_runner.invoke(
            app, ["--format", "json", "--models-path", str(tmp_path / "nope.yml"), "models", "list"]
        )
        assert result.exit_code == ExitCode.DATA_SOURCE_ERROR


class TestModelsCommands:
    def test_list(self, invoke) -> None:
        result = invoke("models", "list")
        assert result.exit_code == ExitCode.SUCCESS
        data = json.loads(result.stdout)
        assert data["count"] == 2
        assert [m["name"] for m in data["models"]] == ["M", "Flat"]
        assert data["models"][0]["price"] == "400 credits"
        assert data["models"][0]["variable"] is True

    def test_list_sorted_by_price(self, invoke) -> None:
        data = json.loads(invoke("models", "list", "--sort", "asc").stdout)
        assert [m["name"] for m in data["models"]] == ["Flat", "M"]

    def test_list_by_capability(self, invoke) -> None:
        data = json.loads(invoke("models", "list", "--capability", "audio").stdout)
        assert [m["name"] for m in data["models"]] == ["M"]

    def test_list_search(self, invoke) -> None:
        data = json.loads(invoke("models", "list", "--search", "flat pricing").stdout)
        assert [m["name"] for m in data["models"]] == ["Flat"]

    def test_list_in_dollars(self, invoke) -> None:
        data = json.loads(invoke("--display-mode", "dollars", "models", "list").stdout)
        assert data["models"][0]["price"] == "$4.00"
        assert data["models"][1]["price"] == "$0.80"

    def test_get(self, invoke) -> None:
        result = invoke("models", "get", "M")
        assert result.exit_code == ExitCode.SUCCESS
        data = json.loads(result.stdout)
        assert data["provider_model"] == "test:1@1"
        assert data["pricing"]["motion_control"] == {"standard": "0.08", "pro": "0.15"}

    def test_get_yaml(self, invoke) -> None:
        result = invoke("models", "get", "Flat", fmt="yaml")
        assert result.exit_code == ExitCode.SUCCESS
        assert yaml.safe_load(result.stdout)["pricing"]["base_price"] == "0.8"

    def test_get_to_file(self, invoke, tmp_path: Path) -> None:
        out = tmp_path / "m.json"
        result = invoke("models", "get", "M", "--output", str(out))
        assert result.exit_code == ExitCode.SUCCESS
        assert json.loads(out.read_text())["name"] == "M"

    def test_get_unknown_model(self, invoke) -> None:
        result = invoke("models", "get", "Nope")
        assert result.exit_code == ExitCode.MODEL_NOT_FOUND


class TestPriceCommands:
    def test_quote_defaults(self, invoke) -> None:
        result = invoke("price", "quote", "M")
        assert result.exit_code == ExitCode.SUCCESS
        data = json.loads(result.stdout)
        assert data["model"] == "M"
        assert data["kind"] == "amount"
        assert data["selection"]["duration"] == "8"
        assert data["credits"] == 400
        assert data["display"] == "400 credits"

    def test_quote_without_audio(self, invoke) -> None:
        data = json.loads(invoke("price", "quote", "M", "--no-audio").stdout)
        assert data["dollars"] == "3.5"
        assert data["selection"]["audio"] is False

    def test_quote_fallback(self, invoke) -> None:
        data = json.loads(invoke("price", "quote", "M", "--aspect", "16:9").stdout)
        assert data["kind"] == "fallback"
        assert data["dollars"] == "5.0"

    def test_quote_motion_control(self, invoke) -> None:
        result = invoke(
            "price", "quote", "M", "--mode", "motion-control", "--tier", "pro", "--reference-seconds", "12"
        )
        data = json.loads(result.stdout)
        assert data["dollars"] == "1.80"
        assert data["selection"]["tier"] == "pro"

    def test_quote_rate_pending(self, invoke) -> None:
        data = json.loads(invoke("price", "quote", "M", "--mode", "motion-control").stdout)
        assert data["kind"] == "rate_pending"
        assert data["dollars"] is None
        assert data["display"] == "8 credits/sec"

    def test_quote_in_dollars(self, invoke) -> None:
        result = invoke("--display-mode", "dollars", "price", "quote", "M", "--duration", "4")
        data = json.loads(result.stdout)
        assert data["display"] == "$2.00"
        assert data["display_mode"] == "dollars"

    @pytest.mark.parametrize(
        "args",
        [
            ["--aspect", "4:3"],
            ["--resolution", "4k"],
            ["--duration", "abc"],
            ["--duration", "NaN"],
            ["--duration", "inf"],
            ["--duration", "5"],
            ["--mode", "motion-control", "--reference-seconds", "0"],
            ["--mode", "motion-control", "--reference-seconds", "-3"],
            ["--mode", "frame-images"],
        ],
    )
    def test_quote_invalid_options(self, invoke, args: List[str]) -> None:
        result = invoke("price", "quote", "M", *args)
        assert result.exit_code == ExitCode.INVALID_USAGE

    def test_quote_unknown_model(self, invoke) -> None:
        assert invoke("price", "quote", "Nope").exit_code == ExitCode.MODEL_NOT_FOUND

    def test_table(self, invoke) -> None:
        result = invoke("price", "table", "M")
        assert result.exit_code == ExitCode.SUCCESS
        data = json.loads(result.stdout)
        rows = {row["duration"]: row for row in data["rows"]}
        assert set(rows) == {"4", "8"}
        assert rows["8"]["price"] == "4.0"
        assert rows["8"]["price_without_audio"] == "3.5"
        assert rows["8"]["credits"] == 400
        assert data["motion_control"] == {"standard": "0.08", "pro": "0.15"}

    def test_table_rich_output(self, invoke) -> None:
        result = invoke("--no-color", "price", "table", "M", fmt="table")
        assert result.exit_code == ExitCode.SUCCESS
        assert "M Pricing" in result.stdout
        assert "Motion Control" in result.stdout


class TestDataCommands:
    def test_paths(self, invoke, data_files: Dict[str, Path]) -> None:
        result = invoke("data", "paths")
        assert result.exit_code == ExitCode.SUCCESS
        data = json.loads(result.stdout)
        models = data["data_sources"]["models.yml"]
        assert models["path"] == str(data_files["models"])
        assert models["using_bundled"] is False

    def test_env(self, invoke) -> None:
        data = json.loads(invoke("data", "env").stdout)
        assert data["environment_variables"]["VMR_MODELS_PATH"]["set"] is False

    def test_env_masks_fal_key(self, invoke) -> None:
        with patch.dict(os.environ, {ENV_FAL_API_KEY: "fal-secret"}):
            result = invoke("data", "env")
        assert "fal-secret" not in result.stdout
        assert ENV_FAL_API_KEY in json.loads(result.stdout)["environment_variables"]

    def test_dump(self, invoke) -> None:
        data = json.loads(invoke("data", "dump").stdout)
        assert list(data) == ["Flat", "M", "Required"]

    def test_dump_rejects_table(self, invoke) -> None:
        assert invoke("data", "dump", fmt="table").exit_code == ExitCode.INVALID_USAGE
