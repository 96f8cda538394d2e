"""
Rudimentary type definitions shared across the codebase.

Some stdlib types are generics only for type-checkers, not at runtime
(``logging.LoggerAdapter``, ``asyncio.Task``, ``asyncio.Future``), so they are
defined here once in a form that works in both worlds.
"""
import asyncio
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
    Future = asyncio.Future[Any]
    Task = asyncio.Task[Any]
else:
    LoggerAdapter = logging.LoggerAdapter
    Future = asyncio.Future
    Task = asyncio.Task

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]
