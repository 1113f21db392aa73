from __future__ import annotations

from types import SimpleNamespace

import pytest

from hmmpath.cli import main as cli_main


def test_build_arg_parser_accepts_all_registered_commands() -> None:
    parser = cli_main.build_arg_parser()
    argv = {
        "decode": ["decode", "m.yaml"],
        "batch": ["batch", "a.yaml", "b.yaml"],
        "check": ["check", "m.yaml"],
    }
    for command, args in argv.items():
        assert parser.parse_args(args).command == command


def test_build_arg_parser_requires_add_subparser(monkeypatch: pytest.MonkeyPatch) -> None:
    bad_module = SimpleNamespace(run=lambda _args: None)
    monkeypatch.setattr(cli_main, "_COMMANDS", {"bad": bad_module})
    with pytest.raises(RuntimeError, match="missing add_subparser"):
        cli_main.build_arg_parser()


def test_main_dispatches_and_returns_exit_code(monkeypatch: pytest.MonkeyPatch) -> None:
    called: list[str] = []

    def _add_subparser(subparsers: object) -> None:
        parser = subparsers.add_parser("fake")  # type: ignore[attr-defined]
        parser.set_defaults(command="fake")

    def _run(args: object) -> int:
        called.append(str(args.command))  # type: ignore[attr-defined]
        return 3

    fake_module = SimpleNamespace(add_subparser=_add_subparser, run=_run)
    monkeypatch.setattr(cli_main, "_COMMANDS", {"fake": fake_module})

    assert cli_main.main(["fake"]) == 3
    assert called == ["fake"]


def test_main_requires_run_function(monkeypatch: pytest.MonkeyPatch) -> None:
    def _add_subparser(subparsers: object) -> None:
        parser = subparsers.add_parser("fake")  # type: ignore[attr-defined]
        parser.set_defaults(command="fake")

    fake_module = SimpleNamespace(add_subparser=_add_subparser)
    monkeypatch.setattr(cli_main, "_COMMANDS", {"fake": fake_module})

    with pytest.raises(RuntimeError, match="missing run"):
        cli_main.main(["fake"])


def test_app_exits_with_main_code(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli_main, "main", lambda argv=None: 1)
    with pytest.raises(SystemExit) as excinfo:
        cli_main.app()
    assert excinfo.value.code == 1
