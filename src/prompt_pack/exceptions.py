from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class PromptPackError(Exception):
    """Base exception for errors in the prompt_pack package."""

    def __str__(self) -> str:
        return getattr(self, "message", "") or repr(self)


@dataclass(frozen=True)
class ConfigurationError(PromptPackError):
    """Raised when a configuration file cannot be read or validated."""

    source: Path
    message: str


@dataclass(frozen=True)
class FileProcessingError(PromptPackError):
    """Raised when the content of a selected file cannot be read."""

    path: str
    message: str = "Cannot read file content."


@dataclass(frozen=True)
class ExportWriteError(PromptPackError):
    """Raised when an export artifact cannot be written."""

    path: Path
    message: str = "Cannot write export artifact."


@dataclass(frozen=True)
class GitCommandError(PromptPackError):
    """Raised when a git command cannot be started."""

    command: str
    returncode: int
    stdout: str
    stderr: str


@dataclass(frozen=True)
class OperationCancelledError(PromptPackError):
    """Raised when a running operation observes its cancellation flag."""

    phase: str = ""


@dataclass(frozen=True)
class DeliveryError(PromptPackError):
    """Raised when a result cannot be handed to the user (e.g. no clipboard available)."""

    message: str = "Cannot deliver the result."
