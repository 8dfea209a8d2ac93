"""
Base classes for wrapping external command-line tools.

Provides executable discovery (explicit path, tool bin directory from the
environment, then PATH), command execution with timeout support, and
errors that carry installation and troubleshooting hints.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar

from mlss.core.exceptions import MlssError

logger = logging.getLogger(__name__)

# Alphanumeric, underscore, hyphen, dot and slash
_SAFE_PATH_PATTERN = re.compile(r"^[\w\-./]+$")


class UnsafePathError(MlssError):
    """Raised when a file path cannot be passed safely to an external tool."""

    def __init__(self, path: Path, reason: str = ""):
        detail = f": {reason}" if reason else ""
        super().__init__(
            message=f"Unsafe path detected: {path}{detail}",
            suggestion=(
                "Ensure file paths contain only alphanumeric characters, "
                "underscores, hyphens, and periods."
            ),
        )
        self.path = path


def validate_path_safe(
    path: Path,
    *,
    must_exist: bool = False,
    resolve: bool = True,
) -> Path:
    """Validate that a path is safe for use in subprocess commands.

    Args:
        path: Path to validate
        must_exist: If True, raise error if path doesn't exist
        resolve: If True, resolve the path to its absolute form

    Returns:
        The validated (and optionally resolved) path

    Raises:
        UnsafePathError: If path contains a null byte
        FileNotFoundError: If must_exist=True and path doesn't exist
    """
    if resolve:
        path = path.resolve()

    path_str = str(path)

    if "\x00" in path_str:
        raise UnsafePathError(path, "contains null byte")

    if not _SAFE_PATH_PATTERN.match(path_str):
        logger.warning("Path contains unusual characters (may cause issues): %s", path)

    if must_exist and not path.exists():
        msg = f"Path does not exist: {path}"
        raise FileNotFoundError(msg)

    return path


class ToolNotFoundError(MlssError):
    """Raised when a required external tool cannot be found."""

    def __init__(self, tool_name: str, install_hint: str = "", env_var: str | None = None):
        suggestion = f"Install {tool_name} and ensure it is in your PATH"
        if env_var:
            suggestion += f", or set {env_var} to its bin directory"
        suggestion += "."
        if install_hint:
            suggestion = f"{suggestion}\n\nInstallation:\n  {install_hint}"

        super().__init__(
            message=f"Required tool '{tool_name}' not found",
            suggestion=suggestion,
        )
        self.tool_name = tool_name


class ToolExecutionError(MlssError):
    """Raised when an external tool returns a non-zero exit code."""

    def __init__(
        self,
        tool_name: str,
        command: list[str],
        return_code: int,
        stderr: str,
    ):
        cmd_str = " ".join(command)
        if len(cmd_str) > 200:
            cmd_str = cmd_str[:200] + "..."

        stderr_display = stderr.strip()
        if len(stderr_display) > 500:
            stderr_display = stderr_display[:500] + "\n...[truncated]"

        super().__init__(
            message=(
                f"{tool_name} failed with exit code {return_code}\n\n"
                f"Command: {cmd_str}\n\n"
                f"Error output:\n{stderr_display}"
            ),
            suggestion=(
                "Check the query file and the BLAST database. "
                "Run with --debug for detailed output."
            ),
        )
        self.tool_name = tool_name
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class ToolTimeoutError(MlssError):
    """Raised when an external tool exceeds the specified timeout."""

    def __init__(self, tool_name: str, timeout_seconds: float, command: list[str]):
        cmd_str = " ".join(command)
        if len(cmd_str) > 200:
            cmd_str = cmd_str[:200] + "..."

        super().__init__(
            message=(
                f"{tool_name} timed out after {timeout_seconds:.0f} seconds\n\n"
                f"Command: {cmd_str}"
            ),
            suggestion="Increase the timeout or check whether the query file is unusually large.",
        )
        self.tool_name = tool_name
        self.timeout_seconds = timeout_seconds
        self.command = command


@dataclass(frozen=True)
class ToolResult:
    """Result from running an external tool.

    Attributes:
        command: The command that was executed.
        return_code: Exit code from the process.
        stdout: Standard output from the process.
        stderr: Standard error from the process.
        elapsed_seconds: Wall-clock time for execution.
    """

    command: tuple[str, ...]
    return_code: int
    stdout: str
    stderr: str
    elapsed_seconds: float

    @property
    def success(self) -> bool:
        """Return True if the tool exited with code 0."""
        return self.return_code == 0

    @property
    def command_string(self) -> str:
        """Return the command as a space-separated string."""
        return " ".join(self.command)


class ExternalTool(ABC):
    """Abstract base class for wrapping external command-line tools.

    Subclasses must define:
        TOOL_NAME: Primary executable name (e.g., "blastn")
        build_command: Method to construct the command arguments

    Optional class attributes:
        BIN_DIR_ENV: Environment variable naming a bin directory searched
            before PATH (e.g., "BLAST_BIN_PATH")
        INSTALL_HINT: Instructions for installing the tool

    An explicit executable passed to the constructor takes precedence over
    both. Use set_executable_resolver() to inject a custom PATH lookup in tests.
    """

    TOOL_NAME: ClassVar[str]
    BIN_DIR_ENV: ClassVar[str | None] = None
    INSTALL_HINT: ClassVar[str] = ""

    _executable_cache: ClassVar[dict[str, Path | None]] = {}
    _executable_resolver: ClassVar[Callable[[str], str | None]] = staticmethod(
        shutil.which
    )

    def __init__(self, executable: Path | None = None) -> None:
        self.executable = executable

    @classmethod
    def check_available(cls) -> bool:
        """Check if the tool can be located.

        Returns:
            True if the tool can be found, False otherwise.
        """
        try:
            cls.get_executable()
            return True
        except ToolNotFoundError:
            return False

    @classmethod
    def get_executable(cls) -> Path:
        """Locate the tool executable.

        Looks in the directory named by BIN_DIR_ENV first, then uses the
        configured resolver (default: shutil.which).

        Returns:
            Path to the executable.

        Raises:
            ToolNotFoundError: If the tool cannot be found.
        """
        if cls.TOOL_NAME in cls._executable_cache:
            cached = cls._executable_cache[cls.TOOL_NAME]
            if cached is not None:
                return cached
            raise ToolNotFoundError(cls.TOOL_NAME, cls.INSTALL_HINT, cls.BIN_DIR_ENV)

        if cls.BIN_DIR_ENV and os.environ.get(cls.BIN_DIR_ENV):
            candidate = Path(os.environ[cls.BIN_DIR_ENV].strip()) / cls.TOOL_NAME
            if candidate.is_file():
                cls._executable_cache[cls.TOOL_NAME] = candidate
                return candidate
            logger.warning(
                "%s is set but %s was not found there: %s",
                cls.BIN_DIR_ENV,
                cls.TOOL_NAME,
                candidate,
            )

        exe_path = cls._executable_resolver(cls.TOOL_NAME)
        if exe_path:
            path = Path(exe_path)
            cls._executable_cache[cls.TOOL_NAME] = path
            return path

        cls._executable_cache[cls.TOOL_NAME] = None
        raise ToolNotFoundError(cls.TOOL_NAME, cls.INSTALL_HINT, cls.BIN_DIR_ENV)

    @classmethod
    def clear_cache(cls) -> None:
        """Clear the executable location cache."""
        cls._executable_cache.clear()

    @classmethod
    def set_executable_resolver(
        cls,
        resolver: Callable[[str], str | None],
    ) -> None:
        """Inject a custom executable resolver for testing.

        Args:
            resolver: Function that takes a tool name and returns
                the path to the executable or None if not found.
        """
        cls._executable_resolver = staticmethod(resolver)
        cls.clear_cache()

    @classmethod
    def reset_executable_resolver(cls) -> None:
        """Reset the executable resolver to the default (shutil.which)."""
        cls._executable_resolver = staticmethod(shutil.which)
        cls.clear_cache()

    def resolve_executable(self) -> Path:
        """Return the explicit executable if one was given, else locate it.

        Raises:
            ToolNotFoundError: If the explicit executable does not exist or
                the tool cannot be located.
        """
        if self.executable is not None:
            if not self.executable.is_file():
                raise ToolNotFoundError(str(self.executable), self.INSTALL_HINT)
            return self.executable
        return self.get_executable()

    @abstractmethod
    def build_command(self, **kwargs: object) -> list[str]:
        """Build the command-line arguments for this tool.

        Returns:
            List of command-line arguments (including the executable).
        """
        ...

    def run(
        self,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
        **kwargs: object,
    ) -> ToolResult:
        """Execute the tool with the specified arguments.

        Args:
            timeout: Maximum execution time in seconds (None for no limit).
            dry_run: If True, return the command without executing it.
            **kwargs: Arguments passed to build_command().

        Returns:
            ToolResult with command, exit code, and output.

        Raises:
            ToolNotFoundError: If the tool is not installed.
            ToolTimeoutError: If execution exceeds timeout.
        """
        command = self.build_command(**kwargs)
        command_tuple = tuple(command)

        if dry_run:
            return ToolResult(
                command=command_tuple,
                return_code=0,
                stdout="[dry-run] Command not executed",
                stderr="",
                elapsed_seconds=0.0,
            )

        logger.debug("Running: %s", " ".join(command))
        start_time = time.perf_counter()

        try:
            result = subprocess.run(
                command,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired as e:
            raise ToolTimeoutError(self.TOOL_NAME, timeout or 0, command) from e
        except FileNotFoundError as e:
            raise ToolNotFoundError(self.TOOL_NAME, self.INSTALL_HINT, self.BIN_DIR_ENV) from e

        return ToolResult(
            command=command_tuple,
            return_code=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            elapsed_seconds=time.perf_counter() - start_time,
        )

    def run_or_raise(
        self,
        *,
        timeout: float | None = None,
        dry_run: bool = False,
        **kwargs: object,
    ) -> ToolResult:
        """Execute the tool and raise an exception on failure.

        Same as run() but raises ToolExecutionError if exit code is non-zero.

        Raises:
            ToolNotFoundError: If the tool is not installed.
            ToolTimeoutError: If execution exceeds timeout.
            ToolExecutionError: If the tool returns non-zero exit code.
        """
        result = self.run(timeout=timeout, dry_run=dry_run, **kwargs)

        if not result.success and not dry_run:
            raise ToolExecutionError(
                self.TOOL_NAME,
                list(result.command),
                result.return_code,
                result.stderr,
            )

        return result

    def get_version(self, *, timeout: float = 30.0) -> str | None:
        """Return the first line of '<tool> -version', or None if unavailable."""
        try:
            exe = str(self.resolve_executable())
            result = subprocess.run(
                [exe, "-version"],
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except (subprocess.TimeoutExpired, FileNotFoundError, ToolNotFoundError):
            return None

        if result.returncode != 0:
            return None
        for line in result.stdout.splitlines():
            if line.strip():
                return line.strip()
        return None
