from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from prompt_pack.blocks import (
    DIRECTORY_PLACEHOLDER,
    build_block,
    code_fence_language_hint,
    fenced,
    path_label,
    read_text_for,
)
from prompt_pack.exceptions import FileProcessingError
from prompt_pack.file_store import LocalFileNode

if TYPE_CHECKING:
    from pytest_mock import MockerFixture


@pytest.mark.unit
def test_fenced_uses_three_backticks_by_default() -> None:
    assert fenced("print(1)", "python") == "```python\nprint(1)\n```"


@pytest.mark.unit
def test_fenced_defaults_blank_language_to_text() -> None:
    assert fenced("x", None) == "```text\nx\n```"
    assert fenced("x", "  ") == "```text\nx\n```"


@pytest.mark.unit
@pytest.mark.parametrize(("run", "fence_len"), [(1, 3), (3, 4), (5, 6)])
def test_fenced_outgrows_longest_backtick_run(run: int, fence_len: int) -> None:
    content = f"before {'`' * run} after\n``inline``"

    out = fenced(content, "md")

    fence = "`" * fence_len
    assert out == f"{fence}md\n{content}\n{fence}"


@pytest.mark.unit
def test_code_fence_language_hint(tmp_path: Path) -> None:
    assert code_fence_language_hint(LocalFileNode(tmp_path / "Main.KT")) == "kotlin"
    assert code_fence_language_hint(LocalFileNode(tmp_path / "app.tsx")) == "tsx"
    assert code_fence_language_hint(LocalFileNode(tmp_path / "notes.ADOC")) == "adoc"
    assert code_fence_language_hint(LocalFileNode(tmp_path / "Dockerfile")) is None


@pytest.mark.unit
def test_path_label_relative_or_absolute(tmp_path: Path) -> None:
    root = LocalFileNode(tmp_path / "proj")
    inside = LocalFileNode(tmp_path / "proj" / "src" / "a.py")
    outside = LocalFileNode(tmp_path / "other" / "b.py")

    assert path_label(inside, root) == "./src/a.py"
    assert path_label(outside, root) == outside.path
    assert path_label(inside, None) == inside.path


@pytest.mark.unit
def test_read_text_for_prefers_overlay_and_placeholders(tmp_path: Path) -> None:
    text = tmp_path / "a.txt"
    text.write_text("on disk", encoding="utf-8")
    blob = tmp_path / "b.bin"
    blob.write_bytes(b"\x00" * 7)

    assert read_text_for(LocalFileNode(text), {LocalFileNode(text).path: "unsaved"}) == "unsaved"
    assert read_text_for(LocalFileNode(text)) == "on disk"
    assert read_text_for(LocalFileNode(blob)) == "(binary file: 7 bytes)"
    assert read_text_for(LocalFileNode(tmp_path)) == DIRECTORY_PLACEHOLDER


@pytest.mark.unit
def test_read_text_for_wraps_io_errors(tmp_path: Path, mocker: MockerFixture) -> None:
    node = LocalFileNode(tmp_path / "gone.txt")
    (tmp_path / "gone.txt").write_text("x", encoding="utf-8")
    mocker.patch.object(LocalFileNode, "read_text", side_effect=PermissionError("denied"))

    with pytest.raises(FileProcessingError) as exc_info:
        read_text_for(node)

    assert exc_info.value.path == node.path


@pytest.mark.unit
def test_build_block_renders_label_and_fenced_content(tmp_path: Path) -> None:
    src = tmp_path / "src" / "Main.kt"
    src.parent.mkdir()
    src.write_text('fun main() = println("```")', encoding="utf-8")

    block = build_block(LocalFileNode(src), LocalFileNode(tmp_path))

    assert block == './src/Main.kt:\n````kotlin\nfun main() = println("```")\n````'
