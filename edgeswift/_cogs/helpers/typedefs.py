"""
Rudimentary type [re-]definitions shared across the codebase.

Some standard library classes are generic only in the type stubs,
but not at runtime (e.g. ``logging.LoggerAdapter``, ``asyncio.Task``).
This module defines them in a way usable both at runtime and in mypy.
"""
import logging
from typing import TYPE_CHECKING, Any, Union

if TYPE_CHECKING:
    LoggerAdapter = logging.LoggerAdapter[Any]
else:
    LoggerAdapter = logging.LoggerAdapter

# As publicly exposed: we only promise that it is based on one of the built-in loggable classes.
Logger = Union[logging.Logger, LoggerAdapter]
