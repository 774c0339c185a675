from __future__ import annotations
import importlib
from typing import Dict

from connectors.base import DirectoryService


_REGISTRY: Dict[str, DirectoryService] = {}

# Modules whose import registers a built-in connector
_BUILTIN_MODULES = ("connectors.google_drive.connector",)


def register(name: str):
    """Decorator to register a directory service implementation by name."""
    def _wrap(cls):
        instance = cls()
        _REGISTRY[name] = instance
        return cls

    return _wrap


def _load_builtins() -> None:
    for module in _BUILTIN_MODULES:
        importlib.import_module(module)


def get_connector(name: str) -> DirectoryService:
    _load_builtins()
    if name not in _REGISTRY:
        raise KeyError(f"Connector '{name}' is not registered")
    return _REGISTRY[name]


def list_connectors() -> list[str]:
    _load_builtins()
    return sorted(_REGISTRY.keys())
