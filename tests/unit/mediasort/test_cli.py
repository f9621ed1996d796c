"""
Unit tests for the mediasort command line.
"""

import hashlib
import json
from unittest.mock import patch

import pytest

from mediasort import cli


@pytest.fixture(autouse=True)
def no_logging_setup():
    """Keep structlog unconfigured so other tests can capture logs."""
    with patch("mediasort.cli.configure_from_env") as configure:
        yield configure


def test_parser_defaults():
    args = cli.build_parser().parse_args(["a.jpg", "b.mp3"])

    assert args.config == "cfg.json"
    assert args.rebuild is False
    assert args.files == ["a.jpg", "b.mp3"]


def test_ingest_moves_and_persists(config_file, library):
    src = library["inbox"] / "song.mp3"
    src.write_bytes(b"la la la")

    code = cli.main(["-c", str(config_file), str(src)])

    assert code == cli.EXIT_OK
    dest = library["music"] / "song.mp3"
    assert dest.read_bytes() == b"la la la"
    stored = json.loads(library["store"].read_text(encoding="utf-8"))
    assert stored == {hashlib.sha256(b"la la la").hexdigest(): str(dest)}


def test_rebuild_writes_snapshots_not_store(config_file, library):
    (library["images"] / "a.jpg").write_bytes(b"pixels")

    code = cli.main(["-c", str(config_file), "--rebuild"])

    assert code == cli.EXIT_OK
    assert json.loads(library["store"].read_text(encoding="utf-8")) == {}
    db_dir = library["store"].parent
    assert (db_dir / "duplicates.store.json").exists()
    assert (db_dir / "new_since_last.store.json").exists()
    assert len(list(db_dir.glob("20*.store.json"))) == 1


def test_missing_config_exits_1(tmp_path):
    assert cli.main(["-c", str(tmp_path / "missing.json"), "x.jpg"]) == cli.EXIT_STARTUP_FAILED


def test_malformed_store_exits_1_before_any_move(config_file, library):
    library["store"].write_text("{}{}", encoding="utf-8")
    src = library["inbox"] / "a.jpg"
    src.write_bytes(b"untouched")

    assert cli.main(["-c", str(config_file), str(src)]) == cli.EXIT_STARTUP_FAILED
    assert src.read_bytes() == b"untouched"


def test_root_without_rebuild_is_usage_error(config_file):
    with pytest.raises(SystemExit) as exc:
        cli.main(["-c", str(config_file), "--root", "/x"])

    assert exc.value.code == cli.EXIT_USAGE


def test_rebuild_with_files_is_usage_error(config_file):
    with pytest.raises(SystemExit) as exc:
        cli.main(["-c", str(config_file), "--rebuild", "a.jpg"])

    assert exc.value.code == cli.EXIT_USAGE


def test_log_options_forwarded(config_file, no_logging_setup):
    cli.main(["-c", str(config_file), "--log-level", "DEBUG", "--log-format", "console"])

    no_logging_setup.assert_called_once_with(level="DEBUG", log_format="console")


def test_log_level_is_case_insensitive(config_file, no_logging_setup):
    cli.main(["-c", str(config_file), "--log-level", "warning"])

    no_logging_setup.assert_called_once_with(level="WARNING", log_format=None)


def test_unknown_log_level_is_usage_error(config_file, no_logging_setup):
    with pytest.raises(SystemExit) as exc:
        cli.main(["-c", str(config_file), "--log-level", "verbose"])

    assert exc.value.code == cli.EXIT_USAGE
    no_logging_setup.assert_not_called()


def test_unknown_env_log_level_is_usage_error(config_file, no_logging_setup):
    no_logging_setup.side_effect = ValueError("Unknown log level: verbose")

    with pytest.raises(SystemExit) as exc:
        cli.main(["-c", str(config_file)])

    assert exc.value.code == cli.EXIT_USAGE
