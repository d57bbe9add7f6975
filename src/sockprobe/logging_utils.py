"""Runtime logging helpers."""

from __future__ import annotations

import os
import sys
from contextvars import ContextVar
from logging import Handler
from typing import Literal

import loguru
from loguru import logger
from rich import get_console
from rich.logging import RichHandler

LogProfile = Literal["default", "console"]

_PROFILE_FORMATS: dict[LogProfile, str] = {
    "console": "{extra[unit]} | {message}",
    "default": "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[unit]} | {message}",
}
_CONFIGURED: tuple[LogProfile, str] | None = None

_current_unit: ContextVar[str] = ContextVar("sockprobe_unit", default="-")


def current_unit() -> str:
    """Return the name of the unit running in the current task."""
    return _current_unit.get()


def bind_unit(name: str) -> None:
    """Tag log records emitted by the current task with a unit name."""
    _current_unit.set(name)


def _build_console_handler() -> Handler:
    return RichHandler(
        console=get_console(),
        show_level=True,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )


def configure_logging(*, profile: LogProfile = "default", level: str | None = None) -> None:
    """Configure process-level logging once per profile and level."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["unit"] = current_unit()

    global _CONFIGURED
    level = (level or os.getenv("SOCKPROBE_LOG_LEVEL", "INFO")).upper()
    if (profile, level) == _CONFIGURED:
        return

    logger.remove()
    if profile == "console":
        logger.add(
            _build_console_handler(),
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    else:
        logger.add(
            sys.stderr,
            level=level,
            format=_PROFILE_FORMATS[profile],
            backtrace=False,
            diagnose=False,
        )
    logger.configure(patcher=inject_context)
    _CONFIGURED = (profile, level)
