# tests/test_main.py
"""
Tests for the command line entry point.
"""
import json
import logging
import sys

import pytest

import main
from bench.core.manifest import read_manifest


@pytest.fixture(autouse=True)
def isolate(monkeypatch, tmp_path):
    # main() installs an excepthook and root handlers, and must not read the user's settings
    monkeypatch.setattr(sys, "excepthook", sys.excepthook)
    monkeypatch.setenv("BENCH_CONFIG", str(tmp_path / "no-settings.json"))
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, main.LogFormatter):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def source(tmp_path, make_tree):
    return make_tree({"a.txt": "alpha", "sub/b.txt": "bravo"}, tmp_path.resolve() / "source")


def test_version(capsys):
    assert main.main(["version"]) == 0

    assert capsys.readouterr().out.strip() == "bench 0.2.1"


def test_version_flag(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main.main(["--version"])

    assert exc_info.value.code == 0
    assert "bench 0.2.1" in capsys.readouterr().out


@pytest.mark.parametrize("argv", [[], ["help"], ["bogus"], ["-h"], ["fetch", "--help"]])
def test_help(capsys, argv):
    assert main.main(argv) == 0

    out = capsys.readouterr().out
    assert out.startswith("USAGE: bench [flags] ACTION")
    assert "generate" in out and "fetch" in out


def test_parse_arguments():
    args = main.parse_arguments([
        "fetch", "--target", "/srv/tree", "--source", "http://example.com",
        "--worker", "4", "--dynamic", "false", "--fail-fast", "--algorithm", "sha256", "-v",
    ])

    assert args.action is main.Action.FETCH
    assert args.target == "/srv/tree"
    assert args.source == "http://example.com"
    assert args.workers == 4
    assert args.dynamic is False
    assert args.fail_fast is True
    assert args.algorithm.label == "sha256"
    assert args.log_level == "INFO"


def test_parse_arguments_defaults():
    args = main.parse_arguments(["generate"])

    assert args.target == "./"
    assert args.source is None
    assert args.workers is None
    assert args.fail_fast is None
    assert args.log_level is None
    assert main.parse_arguments(["generate", "--debug"]).log_level == "DEBUG"


@pytest.mark.parametrize("argv", [["fetch", "--dynamic", "maybe"], ["fetch", "--algorithm", "crc32"]])
def test_invalid_flag_values_exit(argv):
    with pytest.raises(SystemExit) as exc_info:
        main.parse_arguments(argv)

    assert exc_info.value.code == 2


def test_generate_and_fetch(capsys, source, tmp_path):
    target = tmp_path.resolve() / "target"
    target.mkdir()

    assert main.main(["generate", "--target", str(source), "--source", str(source)]) == 0
    assert "with 2 files (0 ignored)" in capsys.readouterr().out

    assert main.main(["fetch", "--target", str(target), "--worker", "2", "--dynamic", "false",
                      "--source", str(source)]) == 0
    assert "fetched 2 of 2 missing files from" in capsys.readouterr().out
    assert (target / "sub" / "b.txt").read_text() == "bravo"
    assert read_manifest(target / ".patch").origin == str(source)

    assert main.main(["fetch", "--target", str(target)]) == 0
    assert "fetched 0 of 0 missing files" in capsys.readouterr().out


def test_fetch_from_unknown_scheme_fails(tmp_path):
    assert main.main(["fetch", "--target", str(tmp_path), "--source", "ftp://host"]) == 1


def test_generate_missing_target_fails(tmp_path):
    assert main.main(["generate", "--target", str(tmp_path / "absent")]) == 1


def test_invalid_settings_fail(tmp_path, source):
    config = tmp_path / "settings.json"
    config.write_text(json.dumps({"workers": 0}))

    assert main.main(["generate", "--target", str(source), "--config", str(config)]) == 1
    assert not (source / ".patch").exists()


def test_log_file(tmp_path, source):
    log_file = tmp_path / "logs" / "bench.log"

    assert main.main(["generate", "--target", str(source), "-v", "--log-file", str(log_file)]) == 0

    assert "Starting bench v0.2.1 generate" in log_file.read_text()
