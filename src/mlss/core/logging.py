"""
Run log configuration.

A search run logs to the console through rich and to three files next to
the requested output path:

    <output>.error   ERROR and above
    <output>.info    INFO and above (renamed to <output> when the run ends)
    <output>.debug   everything, only when running at DEBUG level

Worker processes do not inherit handlers under the spawn and forkserver
start methods, so RunLogPaths is picklable and callable: the scheduler runs
it as the pool initializer to reinstall the file handlers in each worker.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler

logger = logging.getLogger(__name__)

PACKAGE_LOGGER = "mlss"

FILE_LOG_FORMAT = "%(asctime)s %(levelname)s> %(filename)s:%(lineno)d %(funcName)s - %(message)s"

# Marks handlers installed here so reconfiguration replaces them
_HANDLER_MARK = "_mlss_run_log"


@dataclass(frozen=True)
class RunLogPaths:
    """Log file locations of a search run.

    Attributes:
        output: Final output file (receives the INFO log at the end).
        level: Logging level of the run.
    """

    output: Path
    level: int = logging.INFO

    @property
    def error(self) -> Path:
        return self.output.with_name(self.output.name + ".error")

    @property
    def info(self) -> Path:
        return self.output.with_name(self.output.name + ".info")

    @property
    def debug(self) -> Path:
        return self.output.with_name(self.output.name + ".debug")

    def all(self) -> tuple[Path, Path, Path]:
        return (self.error, self.info, self.debug)

    def install_file_handlers(self) -> None:
        """Attach the run's file handlers to the package logger."""
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        _remove_marked_handlers(package_logger, file_only=True)
        package_logger.setLevel(self.level)

        targets = [(self.error, logging.ERROR), (self.info, logging.INFO)]
        if self.level <= logging.DEBUG:
            targets.append((self.debug, logging.DEBUG))

        formatter = logging.Formatter(FILE_LOG_FORMAT)
        for path, level in targets:
            handler = logging.FileHandler(path, mode="a", encoding="utf-8", delay=True)
            handler.setLevel(level)
            handler.setFormatter(formatter)
            setattr(handler, _HANDLER_MARK, True)
            package_logger.addHandler(handler)

    def __call__(self) -> None:
        self.install_file_handlers()


def _remove_marked_handlers(target: logging.Logger, *, file_only: bool = False) -> None:
    for handler in list(target.handlers):
        if not getattr(handler, _HANDLER_MARK, False):
            continue
        if file_only and not isinstance(handler, logging.FileHandler):
            continue
        target.removeHandler(handler)
        handler.close()


def configure_run_logging(
    output: Path,
    level: int = logging.INFO,
    console: Console | None = None,
) -> RunLogPaths:
    """
    Configure console and file logging for a search run.

    Log files left over from an earlier run with the same output path are
    removed first.

    Args:
        output: Final output file of the run.
        level: Logging level (logging.INFO or logging.DEBUG).
        console: Rich console for the console handler.

    Returns:
        RunLogPaths, to be passed to finalize_run_logging() and to the
        scheduler as worker initializer.
    """
    paths = RunLogPaths(output=output, level=level)
    for path in paths.all():
        path.unlink(missing_ok=True)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    _remove_marked_handlers(package_logger)

    rich_handler = RichHandler(
        console=console,
        level=level,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    setattr(rich_handler, _HANDLER_MARK, True)
    package_logger.addHandler(rich_handler)

    paths.install_file_handlers()
    return paths


def finalize_run_logging(paths: RunLogPaths) -> None:
    """
    Close the run's handlers, drop empty log files and move the INFO log
    to the output path.
    """
    _remove_marked_handlers(logging.getLogger(PACKAGE_LOGGER))

    for path in paths.all():
        if path.exists() and path.stat().st_size == 0:
            path.unlink()

    if paths.info.exists():
        paths.info.replace(paths.output)


def log_parameters(parameters: dict[str, object]) -> None:
    """Log run parameters as 'KEY: value' lines."""
    width = max((len(key) for key in parameters), default=0)
    for key, value in parameters.items():
        logger.info("%s: %s", key.upper().ljust(width), value)
