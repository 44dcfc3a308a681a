"""Tests for lazy command loading in the CLI entry point."""

from unittest.mock import Mock

import pytest

from freereader.cli import cli_modular
from freereader.cli.cli_modular import COMMAND_MODULES, _load_command_parser, main


def _no_logging(level):
    return None


@pytest.mark.parametrize("command", sorted(COMMAND_MODULES))
def test_every_command_module_loads(command):
    loaded = _load_command_parser(command)

    assert loaded is not None
    add_parser, handler = loaded
    assert callable(add_parser)
    assert callable(handler)


def test_unknown_command_returns_error(capsys):
    assert main(["crawl"], setup_logging_func=_no_logging) == 1
    assert "Unknown command: crawl" in capsys.readouterr().err


def test_missing_command_prints_usage(capsys):
    assert main([], setup_logging_func=_no_logging) == 1
    captured = capsys.readouterr()
    assert "Available commands" in captured.err
    assert "extract-url" in captured.out


def test_log_level_passed_to_setup():
    setup = Mock()
    override = Mock(return_value=0)

    main(
        ["--log-level", "DEBUG", "housekeeping"],
        setup_logging_func=setup,
        handler_overrides={"housekeeping": override},
    )

    setup.assert_called_once_with("DEBUG")


def test_handler_override_receives_parsed_args():
    override = Mock(return_value=0)

    exit_code = main(
        ["extract-url", "https://medium.com/@alice/post", "--json"],
        setup_logging_func=_no_logging,
        handler_overrides={"extract-url": override},
    )

    assert exit_code == 0
    args = override.call_args.args[0]
    assert args.command == "extract-url"
    assert args.url == "https://medium.com/@alice/post"
    assert args.as_json is True


def test_telemetry_subcommand_options_parsed():
    override = Mock(return_value=0)

    main(
        ["telemetry", "summary", "--hours", "6", "--csv", "out.csv"],
        setup_logging_func=_no_logging,
        handler_overrides={"telemetry": override},
    )

    args = override.call_args.args[0]
    assert args.telemetry_command == "summary"
    assert args.hours == 6
    assert args.csv_path == "out.csv"


def test_broken_command_module_is_reported(mocker, capsys):
    mocker.patch.object(
        cli_modular.importlib, "import_module", side_effect=ImportError("missing dep")
    )

    assert main(["housekeeping"], setup_logging_func=_no_logging) == 1
    assert "Unknown command" in capsys.readouterr().err
