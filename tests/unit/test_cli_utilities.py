"""Test the CLI utilities and constants.

Copyright (c) Advanced Micro Devices, Inc. All rights reserved.
"""

# built-in modules
import json
from unittest.mock import patch

# third-party modules
import pytest
import typer

# project modules
from aksgpu.cli.constants import CATEGORY_EXIT_CODES, ExitCode
from aksgpu.cli.utils import (
    deployment_exit_code,
    display_deployment_result,
    exit_with_error,
    parse_replica_overrides,
    save_summary_with_feedback,
    setup_logging,
)
from aksgpu.core.errors import (
    CancelledError,
    ConnectionError,
    DeploymentError,
    ErrorCategory,
    RuntimeError,
    ValidationError,
    get_error_handler,
)
from aksgpu.deployment.base import DeploymentResult, DeploymentStatus


class TestSetupLogging:
    """Test the setup_logging function."""

    @patch("aksgpu.cli.utils.logging.basicConfig")
    def test_setup_logging_verbose(self, mock_basic_config):
        setup_logging(verbose=True)

        assert mock_basic_config.call_args[1]["level"] == 10  # logging.DEBUG
        assert mock_basic_config.call_args[1]["force"] is True

    @patch("aksgpu.cli.utils.logging.basicConfig")
    def test_setup_logging_normal(self, mock_basic_config):
        setup_logging(verbose=False)

        assert mock_basic_config.call_args[1]["level"] == 20  # logging.INFO

    @patch("aksgpu.cli.utils.logging.basicConfig")
    def test_installs_error_handler(self, mock_basic_config):
        setup_logging(verbose=True)

        handler = get_error_handler()
        assert handler is not None
        assert handler.verbose is True


class TestExitCodes:
    """Exit code values are part of the CLI contract."""

    def test_values(self):
        assert ExitCode.SUCCESS == 0
        assert ExitCode.FAILURE == 1
        assert ExitCode.DEPLOYMENT_FAILURE == 2
        assert ExitCode.VALIDATION_FAILURE == 3
        assert ExitCode.INVALID_ARGS == 4
        assert ExitCode.CANCELLED == 5
        assert ExitCode.PREREQUISITE_FAILURE == 6

    def test_category_mapping(self):
        assert CATEGORY_EXIT_CODES[ErrorCategory.CONFIGURATION] == ExitCode.INVALID_ARGS
        assert CATEGORY_EXIT_CODES[ErrorCategory.CONNECTION] == ExitCode.PREREQUISITE_FAILURE
        assert ErrorCategory.RUNTIME not in CATEGORY_EXIT_CODES

    @pytest.mark.parametrize("error,code", [
        (ValidationError("bad"), ExitCode.INVALID_ARGS),
        (ConnectionError("down"), ExitCode.PREREQUISITE_FAILURE),
        (CancelledError(), ExitCode.CANCELLED),
        (RuntimeError("boom"), ExitCode.FAILURE),
    ])
    def test_exit_with_error(self, error, code):
        with pytest.raises(typer.Exit) as exc_info:
            exit_with_error(error, "test")

        assert exc_info.value.exit_code == code


class TestParseReplicaOverrides:
    def test_repeated_and_comma_separated(self):
        assert parse_replica_overrides(["ampere=8", "hopper=16,turing=2"]) == {
            "ampere": 8, "hopper": 16, "turing": 2
        }

    def test_empty(self):
        assert parse_replica_overrides([]) == {}
        assert parse_replica_overrides(None) == {}

    @pytest.mark.parametrize("value", ["ampere", "=4", "ampere=many"])
    def test_invalid(self, value):
        with pytest.raises(ValidationError):
            parse_replica_overrides([value])


class TestSaveSummaryWithFeedback:
    def test_save_summary_success(self, tmp_path):
        path = tmp_path / "summary.json"

        save_summary_with_feedback({"replicas": 4}, str(path), "Deployment")

        assert json.loads(path.read_text()) == {"replicas": 4}

    def test_no_output_path(self, tmp_path):
        save_summary_with_feedback({"replicas": 4}, None, "Deployment")

        assert list(tmp_path.iterdir()) == []

    def test_save_summary_io_error(self, tmp_path):
        with pytest.raises(typer.Exit) as exc_info:
            save_summary_with_feedback({}, str(tmp_path / "missing" / "s.json"), "Deployment")

        assert exc_info.value.exit_code == ExitCode.FAILURE


class TestDeploymentResult:
    def test_exit_codes(self):
        assert deployment_exit_code(
            DeploymentResult(DeploymentStatus.SUCCESS, "ok")
        ) == ExitCode.SUCCESS
        assert deployment_exit_code(
            DeploymentResult(DeploymentStatus.CANCELLED, "no", error=CancelledError())
        ) == ExitCode.CANCELLED
        assert deployment_exit_code(
            DeploymentResult(DeploymentStatus.FAILED, "x", error=DeploymentError("x"))
        ) == ExitCode.DEPLOYMENT_FAILURE
        assert deployment_exit_code(
            DeploymentResult(DeploymentStatus.FAILED, "x", error=ConnectionError("x"))
        ) == ExitCode.PREREQUISITE_FAILURE
        assert deployment_exit_code(
            DeploymentResult(DeploymentStatus.FAILED, "x")
        ) == ExitCode.DEPLOYMENT_FAILURE

    @patch("aksgpu.cli.utils.console")
    def test_display_failed_step(self, mock_console):
        result = DeploymentResult(
            DeploymentStatus.FAILED,
            "Deploy GPU Operator failed: helm timed out",
            completed_steps=["Check prerequisites"],
        )

        display_deployment_result(result, "GPU Operator Deployment")

        table = mock_console.print.call_args.args[0]
        assert table.row_count == 2
