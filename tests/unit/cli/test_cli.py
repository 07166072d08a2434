"""Unit tests for the command-line entry point."""

import pytest

from dumpvec import cli
from dumpvec.pipeline import RunReport
from dumpvec.utils.exceptions import ConfigurationError, SinkConnectionError


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DIMENSION", "CHUNK_SIZE", "EXPORT_TYPE", "METRIC"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(cli, "load_dotenv", lambda: None)
    monkeypatch.setattr(cli, "setup_logging", lambda level: None)
    return monkeypatch


def test_parser_flags():
    args = cli.build_parser().parse_args(
        ["-f", "dump.sql", "-t", "qdrant", "-k", "key", "--dimension", "384", "--no-clean-html"]
    )
    assert args.data_file == "dump.sql"
    assert args.export_type == "qdrant"
    assert args.db_secret == "key"
    assert args.dimension == 384
    assert args.clean_html is False
    assert args.debug is None


def test_flags_override_environment_and_unset_flags_do_not(clean_env):
    clean_env.setenv("DIMENSION", "768")
    clean_env.setenv("CHUNK_SIZE", "10")
    args = cli.build_parser().parse_args(["--dimension", "384"])
    settings = cli.settings_from_args(args)
    assert settings.dimension == 384
    assert settings.chunk_size == 10


def test_bad_metric_exits_with_configuration_code(capsys):
    assert cli.main(["--metric", "manhattan"]) == cli.EXIT_CONFIG
    assert "Configuration error" in capsys.readouterr().err


def test_successful_run_prints_summary(clean_env, capsys):
    async def fake_run_import(settings):
        return RunReport(source=settings.data_file, dialect="sqlite", extracted=2, stored=2)

    clean_env.setattr(cli, "run_import", fake_run_import)
    assert cli.main(["-f", "items.sql"]) == cli.EXIT_OK
    assert "Stored: 2" in capsys.readouterr().out


def test_failed_records_give_a_failure_code(clean_env):
    async def fake_run_import(settings):
        report = RunReport(extracted=2, stored=1)
        report.record_failure(1, "boom")
        return report

    clean_env.setattr(cli, "run_import", fake_run_import)
    assert cli.main([]) == cli.EXIT_FAILED


@pytest.mark.parametrize(
    "error,code",
    [
        (ConfigurationError("missing key"), cli.EXIT_CONFIG),
        (SinkConnectionError("down"), cli.EXIT_FAILED),
    ],
)
def test_errors_map_to_exit_codes(clean_env, error, code):
    async def fake_run_import(settings):
        raise error

    clean_env.setattr(cli, "run_import", fake_run_import)
    assert cli.main([]) == code
