"""
Reference model states.

- PottsState: cut-edge objective, neighbour-or-uniform proposals
- BlockState: stochastic block model entropy with Peixoto proposals

Use `build_model()` to construct a state by name:

>>> from blockmc.models import build_model, planted_partition
>>> A, planted = planted_partition(100, 4, 0.3, 0.02)
>>> state = build_model('blockmodel', A, B=4)
"""

from typing import Any, Dict, Type

from blockmc.models.base import GraphState, as_adjacency
from blockmc.models.blockmodel import BlockState
from blockmc.models.generate import planted_partition
from blockmc.models.potts import PottsState
from blockmc.state import ModelState

# State types the built-in dispatch catalogs are specialised for
MODEL_STATES = (PottsState, BlockState)

_MODEL_REGISTRY: Dict[str, Type[ModelState]] = {
    'potts': PottsState,
    'blockmodel': BlockState,
    'sbm': BlockState,
}


def build_model(name: str, adjacency, **kwargs: Any) -> ModelState:
    """
    Build a model state by name.

    Parameters
    ----------
    name : str
        'potts', 'blockmodel' or 'sbm' (case-insensitive).
    adjacency : array-like or sparse matrix
        Symmetric adjacency matrix.
    **kwargs
        Passed to the state constructor (b, B, J, partition_dl, ...).

    Raises
    ------
    ValueError
        If the model name is unknown.
    """
    name_lower = name.lower()
    if name_lower not in _MODEL_REGISTRY:
        available = ', '.join(sorted(_MODEL_REGISTRY))
        raise ValueError(f"Unknown model '{name}'. Available: {available}")
    return _MODEL_REGISTRY[name_lower](adjacency, **kwargs)


__all__ = [
    'MODEL_STATES',
    'GraphState',
    'PottsState',
    'BlockState',
    'as_adjacency',
    'build_model',
    'planted_partition',
]
