"""CLI package for running and probing the HS110 collector."""

from importlib import import_module
from types import ModuleType

__all__ = []


# The Typer instance is not re-exported; tests patch names on ``cli.app``.
def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)
