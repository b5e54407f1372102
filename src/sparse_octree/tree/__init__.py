"""
Tree module: coordinate codec, node arena and traversal cursor.
"""

from .codec import (
    MAX_DEPTH,
    MIN_DEPTH,
    encode,
    encode_many,
    decode,
    shared_prefix_length,
    validate_coordinate,
    validate_depth,
)
from .arena import NodeArena, NodeRef, NO_CHILD, ROOT
from .cursor import NodeLoc, TraversalStats, resolve

__all__ = [
    # Codec
    "MAX_DEPTH",
    "MIN_DEPTH",
    "encode",
    "encode_many",
    "decode",
    "shared_prefix_length",
    "validate_coordinate",
    "validate_depth",

    # Arena
    "NodeArena",
    "NodeRef",
    "NO_CHILD",
    "ROOT",

    # Cursor
    "NodeLoc",
    "TraversalStats",
    "resolve",
]
