from __future__ import annotations

from enum import StrEnum, auto


class TreeScope(StrEnum):
    """What the directory-tree header covers.

    PROJECT renders the whole project root, SELECTION renders only the
    selected entries, NONE omits the tree body and keeps a one-line header.
    """

    PROJECT = auto()
    SELECTION = auto()
    NONE = auto()


class TestFilesMode(StrEnum):
    """How test directories are treated during collection."""

    __test__ = False

    INCLUDE = auto()
    EXCLUDE = auto()


class Severity(StrEnum):
    """Severity of a user-facing notification."""

    INFO = auto()
    WARNING = auto()
    ERROR = auto()


DEFAULT_IGNORED_DIRS: tuple[str, ...] = (
    ".git",
    ".idea",
    ".gradle",
    "node_modules",
    "build",
    "out",
    "dist",
    ".next",
    ".output",
    ".yarn",
    "target",
    "coverage",
    "venv",
    ".venv",
    ".promptpack",
)

DEFAULT_IGNORED_EXTS: tuple[str, ...] = (
    # images
    "png", "jpg", "jpeg", "gif", "bmp", "webp", "heic", "heif", "tiff", "tif", "ico", "icns", "svg",
    # audio / video
    "mp3", "wav", "flac", "ogg", "mp4", "m4v", "mov", "avi", "mkv", "webm",
    # archives
    "zip", "tar", "gz", "tgz", "bz2", "7z", "rar", "jar", "aar",
    # fonts, native binaries, design files
    "woff", "woff2", "ttf", "otf", "class", "exe", "dll", "dylib", "so", "pdf", "psd", "ai", "sketch", "fig",
)  # fmt: skip

# Exact file names (no paths), typically lock files.
DEFAULT_IGNORED_FILES: tuple[str, ...] = (
    "package-lock.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "bun.lockb",
    "composer.lock",
    "poetry.lock",
    "pipfile.lock",
    "gradle.lockfile",
    "gradle-lockfile",
    "cargo.lock",
    "podfile.lock",
    "gemfile.lock",
    ".ds_store",
)

DEFAULT_TEST_DIRS: tuple[str, ...] = ("test", "tests", "__tests__", "spec", "specs", "androidtest")

DEFAULT_MANIFEST_NAMES: tuple[str, ...] = (
    "package.json",
    "build.gradle",
    "build.gradle.kts",
    "pom.xml",
    "pyproject.toml",
    "setup.py",
    "cargo.toml",
    "go.mod",
    "*.csproj",
)

DEFAULT_PATH_PATTERNS: tuple[str, ...] = ("packages/*", "modules/*", "libs/*")

DEFAULT_PUBLIC_FOLDER_NAMES: tuple[str, ...] = ("public", "public-api", "api")

DEFAULT_CHUNK_LIMIT = 150_000
DEFAULT_MAX_CLIPBOARD_KB = 800
DEFAULT_TREE_MAX_ENTRIES = 3000
DEFAULT_TREE_INDENT = 2

EXPORT_SUBDIR = (".promptpack", "exports")

# Fenced code block language hints, keyed by lower-cased extension without dot.
EXT_TO_LANG: dict[str, str] = {
    "kt": "kotlin",
    "kts": "kotlin",
    "java": "java",
    "groovy": "groovy",
    "gradle": "groovy",
    "js": "javascript",
    "mjs": "javascript",
    "jsx": "jsx",
    "ts": "typescript",
    "tsx": "tsx",
    "json": "json",
    "yml": "yaml",
    "yaml": "yaml",
    "xml": "xml",
    "html": "html",
    "htm": "html",
    "css": "css",
    "scss": "scss",
    "sass": "sass",
    "md": "markdown",
    "markdown": "markdown",
    "sh": "bash",
    "bash": "bash",
    "zsh": "bash",
    "ps1": "powershell",
    "py": "python",
    "rb": "ruby",
    "go": "go",
    "rs": "rust",
    "php": "php",
    "sql": "sql",
    "c": "c",
    "h": "c",
    "hpp": "cpp",
    "hh": "cpp",
    "cpp": "cpp",
    "cc": "cpp",
    "cxx": "cpp",
    "cs": "csharp",
    "ini": "ini",
    "conf": "ini",
    "cfg": "ini",
    "properties": "ini",
    "toml": "toml",
}
