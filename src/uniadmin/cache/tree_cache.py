"""In-process cache for the assembled hierarchy forest."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

from uniadmin.models.org_unit import HierarchyTreeDTO

logger = logging.getLogger(__name__)

TreeBuilder = Callable[[], Awaitable[list[HierarchyTreeDTO]]]


class HierarchyTreeCache:
    """Populate-once cache for the full hierarchy, shared across requests.

    Readers return the cached forest without locking once it is populated.
    Rebuilds are serialised by a lock so concurrent misses build the tree once.
    ``invalidate`` bumps a generation counter; a rebuild that started under an
    older generation hands its result to its caller but never stores it.
    """

    def __init__(self) -> None:
        self._tree: list[HierarchyTreeDTO] | None = None
        self._generation = 0
        self._lock = asyncio.Lock()

    @property
    def is_populated(self) -> bool:
        return self._tree is not None

    @property
    def generation(self) -> int:
        return self._generation

    def peek(self) -> list[HierarchyTreeDTO] | None:
        return self._tree

    async def get_or_build(self, builder: TreeBuilder) -> list[HierarchyTreeDTO]:
        tree = self._tree
        if tree is not None:
            logger.debug("Hierarchy tree cache hit")
            return tree

        async with self._lock:
            if self._tree is not None:
                return self._tree
            generation = self._generation
            logger.debug("Hierarchy tree cache miss, rebuilding (generation %d)", generation)
            tree = await builder()
            if generation == self._generation:
                self._tree = tree
            else:
                logger.debug("Discarding hierarchy tree built for stale generation %d", generation)
            return tree

    def invalidate(self) -> None:
        self._generation += 1
        self._tree = None
        logger.debug("Hierarchy tree cache invalidated (generation %d)", self._generation)
