"""
blockmc: MCMC sampling of graph partitions.

Subpackages
-----------
blockmc.sampling : sweep samplers, parameter resolver and dispatch catalogs
blockmc.models : reference model states and a planted-partition generator
"""

from blockmc.errors import BlockMCError, DispatchError, ExtractionError
from blockmc.state import NULL_MOVE, ModelState

__version__ = '0.1.0'

__all__ = [
    'BlockMCError',
    'DispatchError',
    'ExtractionError',
    'ModelState',
    'NULL_MOVE',
]
