# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Graph assertions shared by the unit and integration tests."""

from typing import Set

from dnscan.graph import ReferenceGraph


def reachable_from(graph: ReferenceGraph, start: int) -> Set[int]:
    """Nodes reachable from `start` by a path of length >= 1."""
    seen: Set[int] = set()
    stack = graph.successors(start)
    while stack:
        index = stack.pop()
        if index not in seen:
            seen.add(index)
            stack.extend(graph.successors(index))
    return seen
