from __future__ import annotations

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any, assert_never

import yaml
from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from prompt_pack.config import (
    DEFAULT_CHUNK_LIMIT,
    DEFAULT_IGNORED_DIRS,
    DEFAULT_IGNORED_EXTS,
    DEFAULT_IGNORED_FILES,
    DEFAULT_MANIFEST_NAMES,
    DEFAULT_MAX_CLIPBOARD_KB,
    DEFAULT_PATH_PATTERNS,
    DEFAULT_PUBLIC_FOLDER_NAMES,
    DEFAULT_TEST_DIRS,
    DEFAULT_TREE_INDENT,
    DEFAULT_TREE_MAX_ENTRIES,
    TestFilesMode,
    TreeScope,
)
from prompt_pack.exceptions import ConfigurationError
from prompt_pack.filters import FilterConfig, normalize_names
from prompt_pack.logging import logger
from prompt_pack.modules import ModuleDetectionConfig
from prompt_pack.public_api import PublicApiConfig, PublicApiLimits

if TYPE_CHECKING:
    from collections.abc import Iterable

ENV_FILE = find_dotenv(usecwd=True)
CONFIG_ENV_VAR = "PROMPTPACK_CONFIG"
DEFAULT_CONFIG_NAME = ".promptpack.yaml"


class Settings(BaseModel):
    """Immutable configuration snapshot for one prompt_pack operation."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    tree_scope: TreeScope = Field(default=TreeScope.PROJECT, description="Tree header scope.")
    ignored_dirs: frozenset[str] = Field(default=frozenset(DEFAULT_IGNORED_DIRS))
    ignored_exts: frozenset[str] = Field(default=frozenset(DEFAULT_IGNORED_EXTS))
    ignored_files: frozenset[str] = Field(default=frozenset(DEFAULT_IGNORED_FILES))

    test_files_mode: TestFilesMode = Field(default=TestFilesMode.INCLUDE)
    test_dirs: frozenset[str] = Field(default=frozenset(DEFAULT_TEST_DIRS))

    module_detect_by_manifest: bool = True
    module_manifest_names: frozenset[str] = Field(default=frozenset(DEFAULT_MANIFEST_NAMES))
    module_detect_by_path_patterns: bool = False
    module_path_patterns: frozenset[str] = Field(default=frozenset(DEFAULT_PATH_PATTERNS))
    module_require_public_folder: bool = True

    public_enabled: bool = Field(default=False, description="Append the public API section.")
    public_folder_names: frozenset[str] = Field(default=frozenset(DEFAULT_PUBLIC_FOLDER_NAMES))
    public_skip_duplicates_in_main: bool = True
    public_max_per_module: int = Field(default=0, description="0 means unlimited.")
    public_max_total: int = Field(default=0, description="0 means unlimited.")

    chunk_limit: int = Field(default=DEFAULT_CHUNK_LIMIT, description="Characters per export part.")
    max_clipboard_kb: int = Field(default=DEFAULT_MAX_CLIPBOARD_KB, description="Clipboard cap for diffs.")
    default_diff_ref: str = Field(default="", description="Empty means auto-detect.")
    tree_max_entries: int = DEFAULT_TREE_MAX_ENTRIES
    tree_indent_size: int = DEFAULT_TREE_INDENT

    @field_validator(
        "ignored_dirs",
        "ignored_files",
        "test_dirs",
        "module_manifest_names",
        "module_path_patterns",
        "public_folder_names",
        mode="before",
    )
    @classmethod
    def _normalize_names(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value)

    @field_validator("ignored_exts", mode="before")
    @classmethod
    def _normalize_exts(cls, value: Iterable[str] | str | None) -> frozenset[str]:
        return normalize_names(value, strip_dots=True)

    @field_validator("public_max_per_module", "public_max_total", "tree_indent_size", mode="before")
    @classmethod
    def _clamp_zero(cls, value: Any) -> int:  # noqa: ANN401
        return max(0, int(value or 0))

    @field_validator("chunk_limit", "max_clipboard_kb", "tree_max_entries", mode="before")
    @classmethod
    def _clamp_one(cls, value: Any) -> int:  # noqa: ANN401
        return max(1, int(value or 0))

    @property
    def exclude_tests(self) -> bool:
        match self.test_files_mode:
            case TestFilesMode.INCLUDE:
                return False
            case TestFilesMode.EXCLUDE:
                return True
            case _:
                assert_never(self.test_files_mode)

    def effective_ignored_dirs(self) -> frozenset[str]:
        """Ignored directory names, plus the test directories when tests are excluded."""
        if self.exclude_tests:
            return self.ignored_dirs | self.test_dirs
        return self.ignored_dirs

    def filter_config(self) -> FilterConfig:
        return FilterConfig(
            ignored_dirs=self.effective_ignored_dirs(),
            ignored_exts=self.ignored_exts,
            ignored_files=self.ignored_files,
        )

    def module_detection_config(self) -> ModuleDetectionConfig:
        return ModuleDetectionConfig(
            detect_by_manifest=self.module_detect_by_manifest,
            manifest_names=self.module_manifest_names,
            detect_by_path_patterns=self.module_detect_by_path_patterns,
            path_patterns=self.module_path_patterns,
            require_public_folder=self.module_require_public_folder,
            public_folder_names=self.public_folder_names,
            ignored_dirs=self.effective_ignored_dirs(),
        )

    def public_api_config(self) -> PublicApiConfig:
        return PublicApiConfig(
            public_names=self.public_folder_names,
            ignored_exts=self.ignored_exts,
            ignored_files=self.ignored_files,
            test_dirs=self.test_dirs,
            exclude_tests=self.exclude_tests,
            ignored_dirs=self.effective_ignored_dirs(),
            limits=PublicApiLimits(per_module=self.public_max_per_module, total=self.public_max_total),
        )


def find_config_file(root: Path, config_file: str | Path | None = None) -> Path | None:
    """Locate the YAML configuration file.

    Resolution order: ``config_file``, the ``PROMPTPACK_CONFIG`` variable (a
    ``.env`` file found from the working directory is loaded first), then
    ``<root>/.promptpack.yaml`` when it exists.

    Args:
        root (Path): the project root
        config_file (str | Path | None): explicit configuration path

    Returns:
        Path | None: the configuration file, or None to use defaults
    """
    if config_file:
        return Path(config_file)
    if ENV_FILE:
        load_dotenv(ENV_FILE, override=False)
    from_env = os.environ.get(CONFIG_ENV_VAR, "").strip()
    if from_env:
        return Path(from_env)
    candidate = root / DEFAULT_CONFIG_NAME
    return candidate if candidate.is_file() else None


def load_settings(root: Path, config_file: str | Path | None = None, **overrides: Any) -> Settings:  # noqa: ANN401
    """Build a :class:`Settings` snapshot from YAML configuration plus overrides.

    Overrides whose value is None are ignored so CLI flags left unset keep the
    file (or default) value.

    Raises:
        ConfigurationError: if the file cannot be read, is not a mapping, or fails validation
    """
    path = find_config_file(root, config_file)
    data: dict[str, Any] = {}
    if path is not None:
        try:
            loaded = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(source=path, message=f"Cannot read configuration: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(source=path, message="Configuration must be a mapping.")
        data.update(loaded)
        logger.info("configuration_loaded", path=str(path), keys=sorted(loaded))
    data.update({k: v for k, v in overrides.items() if v is not None})
    try:
        return Settings(**data)
    except ValidationError as e:
        raise ConfigurationError(source=path or root, message=f"Invalid configuration: {e}") from e
