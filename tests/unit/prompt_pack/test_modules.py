from __future__ import annotations

from pathlib import Path

import pytest

from prompt_pack.cancellation import CancellationToken
from prompt_pack.exceptions import OperationCancelledError
from prompt_pack.file_store import LocalFileNode
from prompt_pack.modules import (
    ModuleDetectionConfig,
    detect_modules,
    glob_match,
    has_public_folder,
    is_module_dir,
)


def _touch(root: Path, *rels: str) -> None:
    for rel in rels:
        p = root / rel
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(rel, encoding="utf-8")


def _config(**kwargs: object) -> ModuleDetectionConfig:
    base: dict[str, object] = {
        "manifest_names": {"package.json", "*.csproj"},
        "path_patterns": {"packages/*"},
        "public_folder_names": {"public", "api"},
        "ignored_dirs": {"node_modules"},
    }
    base.update(kwargs)
    return ModuleDetectionConfig(**base)


@pytest.mark.unit
@pytest.mark.parametrize(
    ("text", "pattern", "expected"),
    [
        ("package.json", "package.json", True),
        ("Package.JSON", "package.json", True),
        ("App.csproj", "*.csproj", True),
        ("App.csproj.bak", "*.csproj", False),
        ("packages/core", "packages/*", True),
        ("packages/core/sub", "packages/*", True),
        ("libs/a", "libs/?", True),
        ("libs/ab", "libs/?", False),
        ("a.b", "a?b", True),
        ("a+b", "a+b", True),
    ],
)
def test_glob_match(text: str, pattern: str, expected: bool) -> None:  # noqa: FBT001
    assert glob_match(text, pattern) is expected


@pytest.mark.unit
def test_has_public_folder_ignores_start_and_ignored_dirs(tmp_path: Path) -> None:
    _touch(tmp_path, "public/x.txt", "mod/node_modules/api/y.js", "mod/src/api/z.ts")
    names = frozenset({"public", "api"})

    assert not has_public_folder(LocalFileNode(tmp_path / "public"), names)
    assert has_public_folder(LocalFileNode(tmp_path / "mod"), names, frozenset({"node_modules"}))
    assert not has_public_folder(LocalFileNode(tmp_path / "mod" / "node_modules"), frozenset({"public"}))


@pytest.mark.unit
def test_is_module_dir_checks_cancellation_in_public_folder_search(tmp_path: Path) -> None:
    _touch(tmp_path, "mod/package.json", "mod/public/a.ts")
    token = CancellationToken()
    token.cancel()

    with pytest.raises(OperationCancelledError) as exc_info:
        is_module_dir(LocalFileNode(tmp_path / "mod"), LocalFileNode(tmp_path), _config(), cancel=token)

    assert exc_info.value.phase == "has_public_folder"


@pytest.mark.unit
def test_is_module_dir_requires_public_folder_when_configured(tmp_path: Path) -> None:
    _touch(tmp_path, "with/package.json", "with/src/public/a.ts", "without/package.json", "without/src/a.ts")
    root = LocalFileNode(tmp_path)

    assert is_module_dir(LocalFileNode(tmp_path / "with"), root, _config())
    assert not is_module_dir(LocalFileNode(tmp_path / "without"), root, _config())
    assert is_module_dir(LocalFileNode(tmp_path / "without"), root, _config(require_public_folder=False))


@pytest.mark.unit
def test_is_module_dir_falls_back_to_public_folder_when_detectors_off(tmp_path: Path) -> None:
    _touch(tmp_path, "plain/api/a.ts", "bare/a.ts")
    root = LocalFileNode(tmp_path)
    config = _config(detect_by_manifest=False, detect_by_path_patterns=False, require_public_folder=False)

    assert is_module_dir(LocalFileNode(tmp_path / "plain"), root, config)
    assert not is_module_dir(LocalFileNode(tmp_path / "bare"), root, config)


@pytest.mark.unit
def test_is_module_dir_by_path_pattern(tmp_path: Path) -> None:
    _touch(tmp_path, "packages/core/public/a.ts", "other/core/public/a.ts")
    root = LocalFileNode(tmp_path)
    config = _config(detect_by_manifest=False, detect_by_path_patterns=True)

    assert is_module_dir(LocalFileNode(tmp_path / "packages" / "core"), root, config)
    assert not is_module_dir(LocalFileNode(tmp_path / "other" / "core"), root, config)


@pytest.mark.unit
def test_detect_modules_sorted_and_deduplicated(tmp_path: Path) -> None:
    _touch(
        tmp_path,
        "Zeta/package.json",
        "Zeta/public/z.ts",
        "alpha/package.json",
        "alpha/public/a.ts",
        "alpha/src/deep.ts",
        "node_modules/dep/package.json",
        "node_modules/dep/public/d.ts",
    )
    root = LocalFileNode(tmp_path)
    selection = [root, LocalFileNode(tmp_path / "alpha" / "src" / "deep.ts")]

    modules = detect_modules(root, selection, _config())

    assert [m.name for m in modules] == ["alpha", "Zeta"]


@pytest.mark.unit
def test_detect_modules_walks_up_from_selected_file(tmp_path: Path) -> None:
    _touch(tmp_path, "app/package.json", "app/public/index.ts", "app/src/feature/f.ts")
    root = LocalFileNode(tmp_path)

    modules = detect_modules(root, [LocalFileNode(tmp_path / "app" / "src" / "feature" / "f.ts")], _config())

    assert [m.path for m in modules] == [LocalFileNode(tmp_path / "app").path]
