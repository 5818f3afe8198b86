"""
Parameter resolver: typed extraction of named fields from a bundle.

Two kinds of fields exist:

- fixed-type fields have exactly one expected type (counts, flags, rates)
  and are coerced to it (``numpy`` scalars become Python scalars);
- type-list fields may hold one of several types (the model state, the
  vertex list); the dispatch layer tries them one candidate type at a
  time through :func:`try_extract`.

:func:`try_extract` never raises; :func:`extract` and :func:`get_any` turn a failed
lookup into an :class:`~blockmc.errors.ExtractionError`.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Sequence, Tuple, Type, TypeVar, Union
from typing import get_args, get_origin, get_type_hints

import numpy as np

from blockmc.errors import ExtractionError
from blockmc.sampling.bundle import Ref

C = TypeVar('C')

_MISSING = object()
_NO_MATCH = object()


@dataclass(frozen=True)
class Extracted:
    """
    Result-or-error record returned by :func:`try_extract`.

    Attributes
    ----------
    name : str
        Field name.
    expected : str
        Description of the expected type.
    value : Any
        Extracted value (None on failure).
    error : str, optional
        Failure reason, None on success.
    """

    name: str
    expected: str
    value: Any = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> Any:
        """Return the value or raise ExtractionError."""
        if self.error is not None:
            raise ExtractionError(self.name, self.expected, self.error)
        return self.value


def type_name(expected: Union[type, Sequence[type]]) -> str:
    if isinstance(expected, (tuple, list)):
        return '(' + ', '.join(type_name(t) for t in expected) + ')'
    return getattr(expected, '__qualname__', repr(expected))


def _lookup(bundle: Any, name: str) -> Any:
    if isinstance(bundle, Mapping):
        return bundle.get(name, _MISSING)
    return getattr(bundle, name, _MISSING)


def _unwrapped(value: Any) -> Iterator[Any]:
    """Direct value, then the ``_get_any()`` payload, then a Ref target."""
    yield value
    if hasattr(value, '_get_any'):
        value = value._get_any()
        yield value
    if isinstance(value, Ref):
        yield value.get()


def _coerce(value: Any, expected: type) -> Any:
    if expected is bool:
        if isinstance(value, (bool, np.bool_)):
            return bool(value)
        return _NO_MATCH
    if isinstance(value, (bool, np.bool_)):
        # bool is an int subclass; never let a flag pass as a number
        return _NO_MATCH
    if expected is int:
        if isinstance(value, (int, np.integer)):
            return int(value)
        return _NO_MATCH
    if expected is float:
        if isinstance(value, (int, float, np.integer, np.floating)):
            return float(value)
        return _NO_MATCH
    if isinstance(value, expected):
        return value
    return _NO_MATCH


def try_extract(
    bundle: Any,
    name: str,
    expected: type,
    optional: bool = False,
    default: Any = None,
    allow_none: bool = False,
) -> Extracted:
    """
    Look up ``bundle.name`` for a value of type ``expected``.

    Parameters
    ----------
    bundle : mapping or object
        Configuration bundle.
    name : str
        Field name.
    expected : type
        Expected type. ``bool``, ``int`` and ``float`` are coerced from
        compatible Python/numpy scalars; other types are matched with
        ``isinstance``.
    optional : bool
        If True, a missing field yields ``default`` instead of an error.
    default : Any
        Value used for missing optional fields.
    allow_none : bool
        Accept an explicit None.

    Returns
    -------
    Extracted
        Result-or-error record; never raises.
    """
    desc = type_name(expected)
    raw = _lookup(bundle, name)

    if raw is _MISSING:
        if optional:
            return Extracted(name, desc, default)
        return Extracted(name, desc, error='missing')

    if raw is None and allow_none:
        return Extracted(name, desc, None)

    for candidate in _unwrapped(raw):
        value = _coerce(candidate, expected)
        if value is not _NO_MATCH:
            return Extracted(name, desc, value)

    return Extracted(name, desc, error=f'found {type(raw).__name__}')


def extract(bundle: Any, name: str, expected: type) -> Any:
    """
    Extract a fixed-type field, raising ExtractionError on failure.

    Examples
    --------
    >>> from blockmc.sampling.bundle import ConfigBundle
    >>> extract(ConfigBundle(niter=np.int64(3)), 'niter', int)
    3
    """
    return try_extract(bundle, name, expected).unwrap()


def get_any(
    bundle: Any, name: str, choices: Sequence[type]
) -> Tuple[type, Any]:
    """
    Resolve a type-list field against its possible types.

    Returns
    -------
    tuple
        ``(matched_type, value)`` for the first type in ``choices`` that
        matches.

    Raises
    ------
    ExtractionError
        If no type matches.
    """
    reason = None
    for choice in choices:
        got = try_extract(bundle, name, choice)
        if got.ok:
            return choice, got.value
        reason = got.error
    raise ExtractionError(name, type_name(tuple(choices)), reason)


def _field_type(hint: Any) -> Tuple[type, bool]:
    """Split an annotation into (type, nullable)."""
    if get_origin(hint) is Union:
        args = [a for a in get_args(hint) if a is not type(None)]
        return args[0], len(args) < len(get_args(hint))
    return hint, False


def resolve_config(bundle: Any, config_class: Type[C]) -> C:
    """
    Build a sampler config dataclass from a bundle.

    Every dataclass field is extracted as a fixed-type field using its
    annotation. Fields whose metadata carries ``optional=True`` may be
    absent, in which case the dataclass default applies; all other fields
    are required.

    Raises
    ------
    ExtractionError
        If a required field is missing or has the wrong type.
    ValueError
        If the extracted values fail the config's own validation.
    """
    hints = get_type_hints(config_class)
    values = {}
    for f in dataclasses.fields(config_class):
        if not f.init:
            continue
        expected, nullable = _field_type(hints[f.name])
        got = try_extract(
            bundle,
            f.name,
            expected,
            optional=f.metadata.get('optional', False),
            default=_MISSING,
            allow_none=nullable,
        )
        value = got.unwrap()
        if value is not _MISSING:
            values[f.name] = value
    return config_class(**values)
