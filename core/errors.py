from __future__ import annotations
from typing import Optional


class DriveTreeError(Exception):
    """Base class for errors raised by the traversal and node code."""


class NodeOperationError(DriveTreeError):
    """An input item could not be processed; aborts the run unless continue-on-fail is set."""

    def __init__(self, message: str, item_index: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.item_index = item_index


class MissingIdentifierError(NodeOperationError):
    pass


class QueryError(DriveTreeError):
    """The query string could not be parsed."""
