"""
Abstract base classes defining the storage contract of the sparse octree.

The Octree facade only talks to its node store through this interface, so
an alternative store (for example one backed by a memory map) can be
dropped in without touching the traversal code.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import numpy as np


class NodeStore(ABC):
    """
    Abstract base class for node arenas.

    A node store owns every node of one tree and hands out stable integer
    handles. Handle 0 is the root and exists from construction. Handles
    are never freed, so a handle stays valid for the lifetime of the
    store.

    Implementations: NodeArena (numpy structure-of-arrays).
    """

    @property
    @abstractmethod
    def dtype(self) -> np.dtype:
        """Payload dtype of the values held by leaf nodes."""
        pass

    @abstractmethod
    def allocate(self) -> int:
        """
        Create a fresh empty node.

        Returns
        -------
        handle : int
            Handle of the new node.

        Raises
        ------
        ArenaCapacityError
            If the store cannot hold another node.
        """
        pass

    @abstractmethod
    def child(self, handle: int, selector: int) -> int:
        """
        Return the child handle of `handle` at octant `selector`.

        Returns NO_CHILD (-1) when the slot is empty. Never allocates.
        """
        pass

    @abstractmethod
    def child_or_create(self, handle: int, selector: int) -> int:
        """
        Return the child at `selector`, allocating and linking it if absent.
        """
        pass

    @abstractmethod
    def has_value(self, handle: int) -> bool:
        """Whether a payload is stored at `handle`."""
        pass

    @abstractmethod
    def value(self, handle: int) -> Optional[Any]:
        """Stored payload at `handle`, or None if the node holds none."""
        pass

    @abstractmethod
    def set_value(self, handle: int, value: Any) -> None:
        """Store `value` at `handle`, overwriting any previous payload."""
        pass

    @abstractmethod
    def take_value(self, handle: int) -> Optional[Any]:
        """Remove and return the payload at `handle` (None if empty)."""
        pass

    @abstractmethod
    def coerce_value(self, value: Any) -> np.ndarray:
        """
        Convert `value` to a 0-d array of the store dtype.

        Raises
        ------
        PayloadError
            If the value cannot be represented in the dtype.
        """
        pass

    @abstractmethod
    def value_count(self) -> int:
        """Number of nodes currently holding a payload."""
        pass

    @abstractmethod
    def __len__(self) -> int:
        """Number of allocated nodes, root included."""
        pass
