"""
Logging helpers.

All modules log through ``get_logger(__name__)``, which returns an adapter
on a child of the ``predictive`` logger. The adapter prepends the prefix
configured with :func:`set_prefix`, so several controllers running in the
same process can be told apart.
"""

import logging
from typing import Union

LOGGER_NAME = "predictive"

logging.getLogger(LOGGER_NAME).addHandler(logging.NullHandler())

_prefix = ""


class PrefixAdapter(logging.LoggerAdapter):
    """Prepend the package-wide prefix to every message."""

    def process(self, msg, kwargs):
        if _prefix:
            return f"[{_prefix}] {msg}", kwargs
        return msg, kwargs


def get_logger(name: str) -> PrefixAdapter:
    return PrefixAdapter(logging.getLogger(name), {})


def set_level(level: Union[int, str]) -> None:
    """Set the level of the ``predictive`` logger (e.g. ``logging.DEBUG``)."""
    logging.getLogger(LOGGER_NAME).setLevel(level)


def set_prefix(prefix: str) -> None:
    """Set the prefix prepended to every message; empty string disables it."""
    global _prefix
    _prefix = prefix


def get_prefix() -> str:
    return _prefix
