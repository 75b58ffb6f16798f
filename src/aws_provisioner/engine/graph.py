"""Ordering of resource addresses by their dependencies."""

from __future__ import annotations

import heapq
from collections import defaultdict
from typing import TYPE_CHECKING

from aws_provisioner.engine.errors import DependencyCycleError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping


class DependencyGraph:
    """Addresses plus the addresses each one must wait for.

    Edges pointing outside the node set are dropped: a dependency that is not
    part of this run (already applied, or not managed here) cannot block it.
    """

    def __init__(
        self,
        nodes: Iterable[str],
        dependencies: Mapping[str, Iterable[str]],
        priorities: Mapping[str, int] | None = None,
    ) -> None:
        self._nodes = frozenset(nodes)
        self._priority = dict(priorities or {})
        self._waits_on = {
            node: frozenset(dependencies.get(node, ())) & self._nodes for node in self._nodes
        }

    def _key(self, node: str) -> tuple[int, str]:
        return self._priority.get(node, 0), node

    def topological_order(self) -> list[str]:
        """Dependencies first; ties broken by priority, then by address."""
        blockers = {node: len(deps) for node, deps in self._waits_on.items()}
        unblocks: defaultdict[str, list[str]] = defaultdict(list)
        for node, deps in self._waits_on.items():
            for dep in deps:
                unblocks[dep].append(node)

        heap = [self._key(node) for node, count in blockers.items() if count == 0]
        heapq.heapify(heap)

        order: list[str] = []
        while heap:
            _, node = heapq.heappop(heap)
            order.append(node)
            for waiter in unblocks[node]:
                blockers[waiter] -= 1
                if blockers[waiter] == 0:
                    heapq.heappush(heap, self._key(waiter))

        if len(order) < len(self._nodes):
            raise DependencyCycleError(sorted(self._nodes.difference(order)))
        return order

    def reverse_topological_order(self) -> list[str]:
        """Dependents first, as needed for destroy."""
        return self.topological_order()[::-1]
