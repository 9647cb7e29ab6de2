"""
Utility functions for hybridexp.

Includes logging setup and console output helpers.
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler


# Global console for pretty output
console = Console()


def setup_logging(log_file: Path, log_level: str = "INFO", log_format: str = "structured", console_output: bool = True) -> logging.Logger:
    """
    Set up logging for experiment execution.

    Args:
        log_file: Path to log file
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: "structured" (JSON) or "pretty" (human-readable)
        console_output: Also log to console

    Returns:
        Configured package logger
    """
    log_file.parent.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("hybridexp")
    logger.setLevel(getattr(logging, log_level.upper()))
    logger.handlers = []  # Clear existing handlers

    file_handler = logging.FileHandler(log_file)
    if log_format == "structured":
        file_handler.setFormatter(StructuredFormatter())
    else:
        file_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )
    logger.addHandler(file_handler)

    if console_output:
        if log_format == "pretty":
            console_handler = RichHandler(console=console, rich_tracebacks=True, show_time=False)
        else:
            console_handler = logging.StreamHandler()
            console_handler.setFormatter(
                logging.Formatter("%(levelname)s: %(message)s")
            )
        logger.addHandler(console_handler)

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        if hasattr(record, "stage"):
            log_data["stage"] = record.stage
        if hasattr(record, "event"):
            log_data["event"] = record.event
        if hasattr(record, "metadata"):
            log_data["metadata"] = record.metadata

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str)


def format_duration(seconds: float) -> str:
    """
    Render a batch duration as hours, minutes and seconds.

    Leading zero units are omitted, so 83 seconds reads "1m 23s" while
    3725 seconds reads "1h 2m 5s". Fractions of a second are dropped.
    """
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


# Console marks per message kind: (symbol, rich style)
_MARKS = {
    "success": ("✓", "bold green"),
    "error": ("✗", "bold red"),
    "warning": ("⚠", "bold yellow"),
    "info": ("ℹ", "bold cyan"),
}


def _print_marked(kind: str, message: str) -> None:
    symbol, style = _MARKS[kind]
    console.print(f"[{style}]{symbol}[/{style}] {message}")


def print_banner(title: str) -> None:
    """Rule across the console, titled with the batch being run."""
    console.rule(f"[bold blue]{title}[/bold blue]")


def print_success(message: str) -> None:
    _print_marked("success", message)


def print_error(message: str) -> None:
    _print_marked("error", message)


def print_warning(message: str) -> None:
    _print_marked("warning", message)


def print_info(message: str) -> None:
    _print_marked("info", message)
