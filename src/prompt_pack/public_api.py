from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from prompt_pack.cancellation import check_cancelled
from prompt_pack.file_store import rel_or_abs_key
from prompt_pack.filters import Visit, normalize_names, should_include, walk
from prompt_pack.logging import logger

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from prompt_pack.cancellation import CancellationToken
    from prompt_pack.file_store import FileNode


class PublicApiLimits(BaseModel):
    """Caps on collected public files; 0 means unlimited."""

    model_config = ConfigDict(frozen=True)

    per_module: int = 0
    total: int = 0

    @field_validator("per_module", "total", mode="before")
    @classmethod
    def _clamp(cls, value: Any) -> int:  # noqa: ANN401
        return max(0, int(value or 0))


class PublicApiConfig(BaseModel):
    """Switches and name lists for public API collection."""

    model_config = ConfigDict(frozen=True)

    public_names: frozenset[str] = Field(default_factory=frozenset)
    ignored_exts: frozenset[str] = Field(default_factory=frozenset)
    ignored_files: frozenset[str] = Field(default_factory=frozenset)
    test_dirs: frozenset[str] = Field(default_factory=frozenset)
    exclude_tests: bool = False
    ignored_dirs: frozenset[str] = Field(default_factory=frozenset)
    limits: PublicApiLimits = Field(default_factory=PublicApiLimits)

    @field_validator("public_names", "ignored_files", "test_dirs", "ignored_dirs", mode="before")
    @classmethod
    def _normalize(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value)

    @field_validator("ignored_exts", mode="before")
    @classmethod
    def _normalize_exts(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value, strip_dots=True)

    def prunes(self, name: str) -> bool:
        """Check if a directory name is pruned (ignored, or a test dir when tests are excluded)."""
        name_lc = name.lower()
        if name_lc in self.ignored_dirs:
            return True
        return self.exclude_tests and name_lc in self.test_dirs


class PublicApiResult(BaseModel):
    """Collected public files plus trimming flags."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    files: tuple[Any, ...] = Field(default=(), description="FileNodes sorted by project-relative path.")
    trimmed_per_module_count: int = Field(default=0, description="Modules truncated by the per-module cap.")
    trimmed_total: bool = Field(default=False, description="Whether the total cap applied.")


def find_public_dirs(
    module_root: FileNode,
    config: PublicApiConfig,
    *,
    cancel: CancellationToken | None = None,
) -> list[FileNode]:
    """Find every public folder under ``module_root``, the root itself included.

    The search does not stop at the first public folder: nested ones are
    reported too.
    """
    out: list[FileNode] = []

    def visit(node: FileNode) -> Visit:
        if not node.is_dir:
            return Visit.SKIP
        if config.prunes(node.name):
            return Visit.SKIP
        if node.name.lower() in config.public_names:
            out.append(node)
        return Visit.CONTINUE

    walk(module_root, visit, cancel=cancel, phase="find_public_dirs")
    return out


def _collect_public_files(
    start: FileNode,
    out: dict[str, FileNode],
    config: PublicApiConfig,
    cancel: CancellationToken | None,
) -> None:
    def visit(node: FileNode) -> Visit:
        if node.is_dir:
            if node is not start and config.prunes(node.name):
                return Visit.SKIP
            return Visit.CONTINUE
        if should_include(node, config.ignored_exts, config.ignored_files):
            out.setdefault(node.path, node)
        return Visit.SKIP

    walk(start, visit, cancel=cancel, phase="collect_public_files")


def collect_public_api(
    project_root: FileNode | None,
    modules: Sequence[FileNode],
    config: PublicApiConfig,
    *,
    cancel: CancellationToken | None = None,
) -> PublicApiResult:
    """Collect the files exposed by the public folders of ``modules``.

    Per module, the files of all its public folders are sorted by
    case-insensitive relative path and cut at ``limits.per_module``. Modules
    are merged in the given order, first write wins. The merged list is sorted
    again and cut at ``limits.total``.

    Args:
        project_root (FileNode | None): the project root used for relative paths
        modules (Sequence[FileNode]): module roots, usually from ``detect_modules``
        config (PublicApiConfig): names, filters and limits
        cancel (CancellationToken | None): checked once per module

    Returns:
        PublicApiResult: the files and the trimming report
    """
    limits = config.limits
    merged: dict[str, FileNode] = {}
    trimmed_modules = 0

    for module in modules:
        check_cancelled(cancel, "collect_public_api")
        per_module: dict[str, FileNode] = {}
        for pub in find_public_dirs(module, config, cancel=cancel):
            _collect_public_files(pub, per_module, config, cancel)
        ordered = sorted(per_module.values(), key=lambda n: rel_or_abs_key(n, project_root))
        limited = ordered[: limits.per_module] if limits.per_module > 0 else ordered
        if len(limited) < len(ordered):
            trimmed_modules += 1
            logger.info(
                "public_api_module_trimmed",
                module=module.path,
                found=len(ordered),
                kept=len(limited),
            )
        for node in limited:
            merged.setdefault(node.path, node)

    combined = sorted(merged.values(), key=lambda n: rel_or_abs_key(n, project_root))
    trimmed_total = limits.total > 0 and len(combined) > limits.total
    files = combined[: limits.total] if trimmed_total else combined
    logger.info(
        "public_api_collected",
        modules=len(modules),
        files=len(files),
        trimmed_per_module_count=trimmed_modules,
        trimmed_total=trimmed_total,
    )
    return PublicApiResult(
        files=tuple(files),
        trimmed_per_module_count=trimmed_modules,
        trimmed_total=trimmed_total,
    )
