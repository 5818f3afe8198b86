"""
Configuration bundle carried from the caller into the dispatch layer.

A bundle is a plain named record: a dict whose keys are also readable as
attributes. Values can be stored directly, wrapped in an :class:`AnyHolder`
(a type-erased holder exposing ``_get_any()``), or behind a :class:`Ref`.
The resolver knows how to see through both wrappers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ConfigBundle(dict):
    """
    Heterogeneous named record with attribute access.

    Examples
    --------
    >>> bundle = ConfigBundle(beta=1.0, niter=10)
    >>> bundle.beta
    1.0
    >>> bundle.c = float('inf')
    >>> sorted(bundle)
    ['beta', 'c', 'niter']
    """

    def __getattr__(self, name: str) -> Any:
        try:
            return self[name]
        except KeyError:
            raise AttributeError(name) from None

    def __setattr__(self, name: str, value: Any) -> None:
        self[name] = value

    def __delattr__(self, name: str) -> None:
        try:
            del self[name]
        except KeyError:
            raise AttributeError(name) from None

    def copy(self) -> 'ConfigBundle':
        return ConfigBundle(self)

    def __repr__(self) -> str:
        return f"ConfigBundle({dict.__repr__(self)})"


@dataclass(frozen=True)
class Ref:
    """Reference wrapper; ``get()`` returns the wrapped object."""

    target: Any

    def get(self) -> Any:
        return self.target


class AnyHolder:
    """
    Type-erased holder.

    Objects exposing ``_get_any()`` are unwrapped by the resolver before the
    typed check, so a bundle can carry handles whose concrete type is only
    known to whoever created them.
    """

    __slots__ = ('_value',)

    def __init__(self, value: Any):
        self._value = value

    def _get_any(self) -> Any:
        return self._value

    def __repr__(self) -> str:
        return f"AnyHolder({type(self._value).__name__})"
