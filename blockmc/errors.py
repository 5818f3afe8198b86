"""
Exception types raised by the sampling engine.

Both errors are fatal for the invocation that raised them: they signal a
mismatch between what the caller supplied and what the engine can run, and
are never retried internally.
"""

from __future__ import annotations

from typing import Optional, Sequence


class BlockMCError(Exception):
    """Base class for blockmc errors."""


class ExtractionError(BlockMCError, ValueError):
    """
    A named configuration field is missing or has the wrong type.

    Parameters
    ----------
    name : str
        Name of the offending field.
    expected : str
        Human readable description of the expected type(s).
    reason : str, optional
        Extra detail (e.g. 'missing', or the type that was found).
    """

    def __init__(self, name: str, expected: str, reason: Optional[str] = None):
        self.name = name
        self.expected = expected
        self.reason = reason
        msg = f"Cannot extract parameter '{name}' of desired type: {expected}"
        if reason:
            msg += f" ({reason})"
        super().__init__(msg)


class DispatchError(BlockMCError, TypeError):
    """
    No registered type combination matches the supplied configuration.

    Parameters
    ----------
    catalog : str
        Name of the dispatch catalog that was searched.
    fields : sequence of str
        Names of the type-list fields that were resolved.
    """

    def __init__(self, catalog: str, fields: Sequence[str], detail: str = ''):
        self.catalog = catalog
        self.fields = tuple(fields)
        msg = f"dispatch not found for: {catalog}[{', '.join(self.fields)}]"
        if detail:
            msg += f": {detail}"
        super().__init__(msg)
