"""
Tests for the command line.
"""

import json

import pytest

from ghostpool.cli import EXIT_ERROR, EXIT_OK, SECRET_ENV, build_parser, main, read_secret
from ghostpool.config import ClientConfig
from ghostpool.errors import ValidationError


class TestParser:
    """Tests for argument parsing."""

    def test_deposit(self):
        """Amounts are parsed as integers."""
        args = build_parser().parse_args(["--policy", "gating", "deposit", "1000"])
        assert args.command == "deposit"
        assert args.amount == 1000
        assert args.policy == "gating"

    def test_check_takes_u64_id(self):
        """Request ids may be full 64-bit values."""
        args = build_parser().parse_args(["check", str(2**64 - 1)])
        assert args.request_id == 2**64 - 1

    def test_command_required(self):
        """A subcommand must be given."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_secret_not_an_argument(self):
        """Secrets cannot be passed on the command line."""
        with pytest.raises(SystemExit):
            build_parser().parse_args(["deposit", "10", "--secret", "x"])


class TestMain:
    """Tests for main()."""

    def test_config_init(self, tmp_path):
        """config-init writes a loadable default config."""
        path = str(tmp_path / "client.json")
        assert main(["config-init", path]) == EXIT_OK
        assert ClientConfig.load(path).to_dict() == ClientConfig().to_dict()

    def test_invalid_config_reported(self, tmp_path, capsys):
        """Configuration problems exit 1 with a JSON error."""
        assert main(["--rpc-url", "nowhere", "status"]) == EXIT_ERROR
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["name"] == "CONFIGURATION_ERROR"
        assert error["stage"] == "config"

    def test_bad_mxe_key(self, capsys):
        """A non-hex network key is rejected before any network access."""
        assert main(["--mxe-key", "zz", "status"]) == EXIT_ERROR
        error = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
        assert error["details"]["field"] == "mxe_key"


class TestReadSecret:
    """Tests for secret input."""

    def test_from_environment(self, monkeypatch):
        """The secret is read from the environment when set."""
        monkeypatch.setenv(SECRET_ENV, "hunter2")
        assert read_secret() == "hunter2"

    def test_empty_rejected(self, monkeypatch):
        """An empty secret is refused."""
        monkeypatch.setenv(SECRET_ENV, "")
        with pytest.raises(ValidationError):
            read_secret()
