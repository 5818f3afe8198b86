"""
Dispatch catalogs: runtime selection of specialised samplers.

A :class:`StateDispatch` is a closed catalog for one sampler family. It is
declared once with the family's type-list fields (e.g. the model-state
type and the vertex-list type) and builds, at creation, one sampler
subclass per element of their cross product. A call then resolves the
bundle's type-list fields against the catalog, constructs the matching
specialisation and hands it to a continuation. The selection happens once
per call; nothing inside the sweep goes through the catalog.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type, TypeVar

import numpy as np

from blockmc.errors import DispatchError
from blockmc.sampling.base import SweepSampler
from blockmc.sampling.resolver import extract, resolve_config, try_extract, type_name

R = TypeVar('R')


@dataclass(frozen=True)
class TypeListField:
    """
    Bundle field whose value may have one of several types.

    Attributes
    ----------
    name : str
        Field name; also the sampler constructor argument it feeds.
    choices : tuple of type
        Possible types, in resolution order.
    """

    name: str
    choices: Tuple[type, ...]


@dataclass(frozen=True)
class CatalogEntry:
    """One concrete type combination and its specialised sampler class."""

    types: Tuple[type, ...]
    sampler_class: Type[SweepSampler]


def specialize(
    sampler_class: Type[SweepSampler],
    fields: Sequence[TypeListField],
    types: Sequence[type],
) -> Type[SweepSampler]:
    """
    Subclass of ``sampler_class`` bound to concrete field types.

    The subclass carries ``<field>_type`` class attributes, e.g.
    ``state_type`` and ``vlist_type``, which the sampler checks on
    construction.
    """
    attrs = {f"{field.name}_type": t for field, t in zip(fields, types)}
    label = ', '.join(t.__name__ for t in types)
    name = f"{sampler_class.__name__}[{label}]"
    attrs['__module__'] = sampler_class.__module__
    attrs['__qualname__'] = name
    return type(name, (sampler_class,), attrs)


class StateDispatch:
    """
    Closed dispatch catalog for one sampler family.

    Parameters
    ----------
    name : str
        Catalog name, used in error messages.
    sampler_class : type
        Sampler family (e.g. MetropolisSampler).
    type_fields : sequence of TypeListField
        Type-list fields resolved at dispatch time.

    Examples
    --------
    >>> catalog = StateDispatch(
    ...     'mcmc',
    ...     MetropolisSampler,
    ...     [TypeListField('state', (PottsState, BlockState)),
    ...      TypeListField('vlist', (np.ndarray, list))],
    ... )
    >>> len(catalog)
    4
    >>> result = catalog.make_dispatch(bundle, lambda sampler: sampler.run())
    """

    def __init__(
        self,
        name: str,
        sampler_class: Type[SweepSampler],
        type_fields: Sequence[TypeListField],
    ):
        self.name = name
        self.sampler_class = sampler_class
        self.type_fields = tuple(type_fields)
        self._entries = tuple(
            CatalogEntry(types, specialize(sampler_class, self.type_fields, types))
            for types in itertools.product(*(f.choices for f in self.type_fields))
        )

    @property
    def entries(self) -> Tuple[CatalogEntry, ...]:
        return self._entries

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.type_fields)

    def __len__(self) -> int:
        return len(self._entries)

    def __repr__(self) -> str:
        return f"StateDispatch({self.name!r}, entries={len(self)})"

    def resolve(
        self, bundle: Any
    ) -> Tuple[Optional[CatalogEntry], Dict[str, Any], Dict[str, str]]:
        """
        First catalog entry whose type-list fields all match the bundle.

        Returns
        -------
        tuple
            ``(entry, values, errors)``; ``entry`` is None when nothing
            matched, in which case ``errors`` maps field names to the last
            failure seen for them.
        """
        errors = {}
        for entry in self._entries:
            values = {}
            for field, expected in zip(self.type_fields, entry.types):
                got = try_extract(bundle, field.name, expected)
                if not got.ok:
                    errors[field.name] = f"{got.error}, wanted {type_name(field.choices)}"
                    break
                values[field.name] = got.value
            else:
                return entry, values, {}
        return None, {}, errors

    def _not_found(self, errors: Dict[str, str], throw_not_found: bool) -> None:
        if throw_not_found:
            detail = '; '.join(f"{k}: {v}" for k, v in errors.items())
            raise DispatchError(self.name, self.field_names, detail)

    def dispatch(
        self,
        bundle: Any,
        f: Callable[..., R],
        throw_not_found: bool = True,
    ) -> Optional[R]:
        """
        Resolve the type-list fields only and call ``f`` with them.

        ``f`` is called exactly once, with the resolved values as keyword
        arguments. Without a match this raises DispatchError, or returns
        None if ``throw_not_found`` is False.
        """
        entry, values, errors = self.resolve(bundle)
        if entry is None:
            self._not_found(errors, throw_not_found)
            return None
        return f(**values)

    def make_dispatch(
        self,
        bundle: Any,
        f: Callable[[SweepSampler], R],
        rng: Optional[np.random.Generator] = None,
        throw_not_found: bool = True,
    ) -> Optional[R]:
        """
        Resolve, construct the specialised sampler and call ``f`` with it.

        Every field is extracted and the sampler fully constructed before
        ``f`` runs, so a failure leaves the model state untouched.

        Raises
        ------
        DispatchError
            If no catalog entry matches (and ``throw_not_found``).
        ExtractionError
            If a fixed-type field is missing or has the wrong type.
        """
        entry, values, errors = self.resolve(bundle)
        if entry is None:
            self._not_found(errors, throw_not_found)
            return None

        cls = entry.sampler_class
        config = resolve_config(bundle, cls.config_class)
        extras = {name: extract(bundle, name, t) for name, t in cls.extra_fields.items()}
        sampler = cls(config=config, rng=rng, **values, **extras)
        return f(sampler)
