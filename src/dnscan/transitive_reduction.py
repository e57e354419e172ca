# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Transitive reduction of a ReferenceGraph.

An edge a->c is redundant when c is also reachable from a through some other
node b (a->...->b->...->c). Removing every redundant edge gives the smallest
graph with the same reachability, which is what the DOT output draws; the
removed edges are returned so they can still be shown, de-emphasized.

Algorithm:
1. Build the path matrix (transitive closure) P from the adjacency matrix,
   Warshall style: for each node i and each j with j->i, let j reach every
   node i reaches.
2. Reject cyclic input. The reduction is only defined for acyclic graphs.
3. For every i->j in P and every k with j->k in P, clear i->k in a copy of P.
   Reading from the unmodified closure keeps the result independent of the
   iteration order.
4. Remove every live edge whose cell is clear in the reduced matrix.

Diagonal cells are never read or written by either pass. Each matrix row is
an int bitset, so both passes do O(n^2) whole-row operations and the matrix
takes n^2 bits.
"""

import logging
from typing import Iterator, List, Set, Tuple

from dnscan.errors import CycleError
from dnscan.graph import Edge, ReferenceGraph
from dnscan.timing import LoggingTimer

logger = logging.getLogger(__name__)


class PathMatrix:
    """An n x n bit matrix. Cell (x, y) lives at flat bit offset x*n + y.

    Row x is kept as an int whose bit y is cell (x, y), so a whole row can be
    combined with another in one operation.
    """

    def __init__(self, size: int):
        if size < 0:
            raise ValueError(f"Matrix size must not be negative, got {size}")
        self.size = size
        self._rows: List[int] = [0] * size

    def offset(self, x: int, y: int) -> int:
        if not (0 <= x < self.size and 0 <= y < self.size):
            raise IndexError(f"Cell ({x}, {y}) outside {self.size}x{self.size} matrix")
        return x * self.size + y

    def get(self, x: int, y: int) -> bool:
        self.offset(x, y)
        return bool(self._rows[x] >> y & 1)

    def set(self, x: int, y: int, value: bool = True) -> None:
        self.offset(x, y)
        bit = 1 << y
        if value:
            self._rows[x] |= bit
        else:
            self._rows[x] &= ~bit

    def clear(self, x: int, y: int) -> None:
        self.set(x, y, False)

    def row(self, x: int) -> int:
        """Row x as a bitset: bit y is set iff cell (x, y) is."""
        self.offset(x, 0)
        return self._rows[x]

    def count(self) -> int:
        """Number of set cells."""
        return sum(bin(row).count("1") for row in self._rows)

    def set_cells(self) -> List[Tuple[int, int]]:
        return [(x, y) for x, row in enumerate(self._rows) for y in _bits(row)]

    def copy(self) -> "PathMatrix":
        other = PathMatrix(self.size)
        other._rows = list(self._rows)
        return other

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PathMatrix):
            return NotImplemented
        return self.size == other.size and self._rows == other._rows

    def __repr__(self) -> str:
        return f"PathMatrix(size={self.size}, set={self.count()})"


def _bits(row: int) -> Iterator[int]:
    """Indices of the set bits of `row`, ascending."""
    while row:
        low = row & -row
        yield low.bit_length() - 1
        row ^= low


def adjacency_matrix(graph: ReferenceGraph) -> PathMatrix:
    """One bit per edge. Self-loops fall on the diagonal and are left out."""
    matrix = PathMatrix(graph.node_count())
    for source, target in graph.edges():
        if source != target:
            matrix.set(source, target)
    return matrix


def path_matrix(graph: ReferenceGraph) -> PathMatrix:
    """The transitive closure: (x, y) is set iff a path of length >= 1 leads from x to y.

    The diagonal is not computed, so a node on a cycle does not get (x, x) set.
    """
    matrix = adjacency_matrix(graph)
    rows = matrix._rows

    for i in range(matrix.size):
        bit_i = 1 << i
        for j in range(matrix.size):
            if j != i and rows[j] & bit_i:
                # j reaches i, so j reaches everything i reaches.
                rows[j] |= rows[i] & ~(1 << j)

    return matrix


def find_cycle_pairs(graph: ReferenceGraph, closure: PathMatrix) -> Set[Edge]:
    """Pairs of nodes that lie on a common cycle, plus (x, x) for self-loops."""
    pairs: Set[Edge] = {(s, t) for s, t in graph.edges() if s == t}
    for i in range(closure.size):
        for j in _bits(closure.row(i)):
            if j > i and closure.get(j, i):
                pairs.add((i, j))
    return pairs


def reduce_path_matrix(closure: PathMatrix) -> PathMatrix:
    """Clear every cell of an acyclic closure that is implied by a two-step path."""
    reduced = closure.copy()
    for i in range(closure.size):
        implied = 0
        for j in _bits(closure.row(i)):
            implied |= closure.row(j)
        reduced._rows[i] &= ~implied
    return reduced


def transitive_reduction(graph: ReferenceGraph) -> Set[Edge]:
    """Remove redundant edges from `graph` in place.

    Returns:
        The (source, target) index pairs that were removed.

    Raises:
        CycleError: If the graph has a cycle; the graph is left unchanged.
    """
    with LoggingTimer("Transitive Reduction", extra_info=f"Nodes={graph.node_count()}") as tmr:
        closure = path_matrix(graph)

        cycles = find_cycle_pairs(graph, closure)
        if cycles:
            raise CycleError(cycles)

        reduced = reduce_path_matrix(closure)

        removed: Set[Edge] = set()
        for source, target in list(graph.edges()):
            if not reduced.get(source, target):
                graph.remove_edge(source, target)
                removed.add((source, target))

        tmr.finish(f"Found {len(removed)} redundant references")

    return removed
