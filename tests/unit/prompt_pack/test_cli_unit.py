from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from prompt_pack import __version__, cli
from prompt_pack.config import TestFilesMode, TreeScope
from prompt_pack.exceptions import FileProcessingError
from prompt_pack.file_store import LocalFileNode
from prompt_pack.git_support import GitOutput

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_parse_args_parses_command_and_overrides() -> None:
    args = cli.parse_args(
        [
            "copy",
            "src",
            "README.md",
            "--tree-scope",
            "selection",
            "--no-public-api",
            "--tests",
            "exclude",
            "--chunk-limit",
            "100",
            "--print",
        ],
    )

    assert args.command == "copy"
    assert args.paths == ["src", "README.md"]
    assert args.tree_scope == "selection"
    assert args.public_api is False
    assert args.tests == "exclude"
    assert args.chunk_limit == 100  # noqa: PLR2004
    assert args.print is True


@pytest.mark.unit
def test_parse_args_leaves_unset_overrides_as_none() -> None:
    args = cli.parse_args(["zip"])

    assert args.paths == []
    assert args.tree_scope is None
    assert args.public_api is None
    assert args.tests is None
    assert args.chunk_limit is None


@pytest.mark.unit
def test_parse_args_version_flag(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


@pytest.mark.unit
def test_parse_args_rejects_unknown_command() -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.parse_args(["publish"])

    assert exc_info.value.code == 2  # noqa: PLR2004


@pytest.mark.unit
def test_settings_from_args_applies_overrides(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PROMPTPACK_CONFIG", raising=False)
    (tmp_path / ".promptpack.yaml").write_text("chunk_limit: 42\npublic_enabled: true\n", encoding="utf-8")
    args = cli.parse_args(["copy", "--tree-scope", "none", "--tests", "exclude", "--no-public-api"])

    settings = cli.settings_from_args(args, tmp_path)

    assert settings.tree_scope is TreeScope.NONE
    assert settings.test_files_mode is TestFilesMode.EXCLUDE
    assert settings.public_enabled is False
    assert settings.chunk_limit == 42  # noqa: PLR2004


@pytest.mark.unit
def test_build_selection(tmp_path: Path) -> None:
    (tmp_path / "src").mkdir()

    assert cli.build_selection(tmp_path, []) == [LocalFileNode(tmp_path)]
    assert cli.build_selection(tmp_path, ["src"]) == [LocalFileNode(tmp_path / "src")]
    with pytest.raises(FileProcessingError):
        cli.build_selection(tmp_path, ["nope"])


@pytest.mark.unit
def test_main_returns_one_on_missing_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = cli.main(["copy", "missing.txt", "--root", str(tmp_path), "--print"])

    assert exit_code == 1
    assert "No such file or directory" in capsys.readouterr().err


@pytest.mark.unit
def test_main_copies_to_clipboard(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / "a.py").write_text("print('hi')", encoding="utf-8")
    copy = mocker.patch("prompt_pack.delivery.pyperclip.copy")

    exit_code = cli.main(["copy", "--root", str(tmp_path), "--tree-scope", "none"])

    assert exit_code == 0
    copy.assert_called_once_with("./a.py:\n```python\nprint('hi')\n```")


@pytest.mark.unit
def test_main_returns_one_when_git_diff_fails(
    tmp_path: Path,
    mocker: MockerFixture,
    capsys: pytest.CaptureFixture[str],
) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / "a.py").write_text("a = 1", encoding="utf-8")
    mocker.patch("prompt_pack.pipeline.resolve_default_ref", return_value="origin/main")
    mocker.patch(
        "prompt_pack.pipeline.diff_against",
        return_value=GitOutput(returncode=128, stdout="", stderr="fatal: bad revision\n"),
    )

    exit_code = cli.main(["diff", "--root", str(tmp_path), "--print", "--tree-scope", "none"])

    assert exit_code == 1
    captured = capsys.readouterr()
    assert "[error] git diff failed: fatal: bad revision" in captured.err
    assert captured.out == ""


@pytest.mark.unit
def test_main_returns_zero_when_diff_is_empty(tmp_path: Path, mocker: MockerFixture) -> None:
    (tmp_path / ".git").mkdir()
    (tmp_path / "a.py").write_text("a = 1", encoding="utf-8")
    mocker.patch("prompt_pack.pipeline.resolve_default_ref", return_value="origin/main")
    mocker.patch("prompt_pack.pipeline.diff_against", return_value=GitOutput(returncode=0, stdout="", stderr=""))

    assert cli.main(["diff", "--root", str(tmp_path), "--print", "--tree-scope", "none"]) == 0
