# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Directed reference graph built from an AnalysisResult.

Nodes are tagged with a NodeKind and carry a reference to the entity they
represent (the AnalysisResult itself, a SolutionDirectory, a Solution or a
Project). Edges mean "contains" (root -> solution directory -> solution) or
"references" (solution or project -> project).

Within each solution, a project with no parent project (no sibling project
references it) is a top-level deliverable and hangs off the solution node;
every other project hangs off each of its parents.

Node indices are assigned at insertion and never change, so edge removal
(see transitive_reduction) leaves every index valid.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Dict, Iterator, List, Optional, Tuple

from dnscan.models import (
    AnalysisResult,
    OutputType,
    Project,
    Solution,
    SolutionDirectory,
    TestFramework,
)

logger = logging.getLogger(__name__)

Edge = Tuple[int, int]


class NodeKind:
    ROOT = "Analysis"
    SOLUTION_DIRECTORY = "SolutionDirectory"
    SOLUTION = "Solution"
    PROJECT = "Project"

    ALL = (ROOT, SOLUTION_DIRECTORY, SOLUTION, PROJECT)


@dataclass(frozen=True, eq=False)
class Node:
    """A graph node: its kind plus the entity it stands for (not owned)."""

    kind: str
    entity: Any

    def __repr__(self) -> str:
        return f"Node({self.kind}, {node_label(self)!r})"


@dataclass(frozen=True)
class GraphOptions:
    """Which optional node categories to include. Solutions and projects always are."""

    include_root: bool = True
    include_solution_directories: bool = True


class ReferenceGraph:
    """A directed graph with stable integer node indices.

    Parallel edges are not kept: adding an existing edge is a no-op.
    """

    def __init__(self) -> None:
        self.nodes: List[Node] = []
        # Per-node successor sets, kept in insertion order.
        self._successors: List[Dict[int, None]] = []

    def add_node(self, node: Node) -> int:
        self.nodes.append(node)
        self._successors.append({})
        return len(self.nodes) - 1

    def add_edge(self, source: int, target: int) -> None:
        self._check_index(source)
        self._check_index(target)
        self._successors[source][target] = None

    def has_edge(self, source: int, target: int) -> bool:
        return target in self._successors[source]

    def remove_edge(self, source: int, target: int) -> bool:
        """Remove an edge. Returns False if it was not present."""
        if target not in self._successors[source]:
            return False
        del self._successors[source][target]
        return True

    def successors(self, index: int) -> List[int]:
        return list(self._successors[index])

    def edges(self) -> Iterator[Edge]:
        """All edges, ordered by source index then insertion."""
        for source, targets in enumerate(self._successors):
            for target in targets:
                yield (source, target)

    def node_count(self) -> int:
        return len(self.nodes)

    def edge_count(self) -> int:
        return sum(len(t) for t in self._successors)

    def nodes_of_kind(self, kind: str) -> List[int]:
        return [i for i, n in enumerate(self.nodes) if n.kind == kind]

    def index_of(self, entity: Any) -> Optional[int]:
        """Index of the node wrapping `entity` (by identity), if any."""
        for i, node in enumerate(self.nodes):
            if node.entity is entity:
                return i
        return None

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.nodes):
            raise IndexError(f"No node with index {index}")

    @classmethod
    def from_edges(cls, node_count: int, edges: List[Edge]) -> "ReferenceGraph":
        """Build a graph of placeholder nodes numbered 0..node_count-1."""
        graph = cls()
        for i in range(node_count):
            graph.add_node(Node(NodeKind.PROJECT, i))
        for source, target in edges:
            graph.add_edge(source, target)
        return graph


def parent_projects(sln: Solution) -> Dict[int, List[int]]:
    """For each project index in `sln.projects`, the indices of the sibling
    projects that reference it."""
    parents: Dict[int, List[int]] = {i: [] for i in range(len(sln.projects))}
    for child_idx, child in enumerate(sln.projects):
        for parent_idx, parent in enumerate(sln.projects):
            if parent_idx != child_idx and parent.references(child):
                parents[child_idx].append(parent_idx)
    return parents


def add_solution(graph: ReferenceGraph, sln: Solution) -> int:
    """Add a solution node, its project nodes and their edges. Returns the solution index."""
    sln_idx = graph.add_node(Node(NodeKind.SOLUTION, sln))
    project_indices = [graph.add_node(Node(NodeKind.PROJECT, p)) for p in sln.projects]

    for child_pos, parent_positions in parent_projects(sln).items():
        child_idx = project_indices[child_pos]
        if not parent_positions:
            graph.add_edge(sln_idx, child_idx)
        for parent_pos in parent_positions:
            graph.add_edge(project_indices[parent_pos], child_idx)

    return sln_idx


def build_analysis_graph(
    result: AnalysisResult, options: Optional[GraphOptions] = None
) -> ReferenceGraph:
    """Graph of an entire scan. There are no edges between solutions."""
    options = options or GraphOptions()
    graph = ReferenceGraph()

    root_idx: Optional[int] = None
    if options.include_root:
        root_idx = graph.add_node(Node(NodeKind.ROOT, result))

    for sd in result.solution_directories:
        parent_idx = root_idx
        if options.include_solution_directories:
            sd_idx = graph.add_node(Node(NodeKind.SOLUTION_DIRECTORY, sd))
            if root_idx is not None:
                graph.add_edge(root_idx, sd_idx)
            parent_idx = sd_idx

        for sln in sd.solutions:
            sln_idx = add_solution(graph, sln)
            if parent_idx is not None:
                graph.add_edge(parent_idx, sln_idx)

    logger.debug(f"Built graph with {graph.node_count()} nodes and {graph.edge_count()} edges")
    return graph


def build_solution_graph(sln: Solution) -> ReferenceGraph:
    graph = ReferenceGraph()
    add_solution(graph, sln)
    return graph


# Display


def node_label(node: Node) -> str:
    entity = node.entity
    if node.kind == NodeKind.ROOT:
        assert isinstance(entity, AnalysisResult)
        return f"{entity.root_path} (analysis)"
    if node.kind == NodeKind.SOLUTION_DIRECTORY:
        assert isinstance(entity, SolutionDirectory)
        return f"{os.path.basename(entity.directory)} (sln dir)"
    if node.kind == NodeKind.SOLUTION:
        assert isinstance(entity, Solution)
        return entity.file_record.filename
    if isinstance(entity, Project):
        return entity.file_record.filename
    return str(entity)


def node_style(node: Node) -> str:
    """DOT attributes for a node, excluding its label."""
    if node.kind == NodeKind.ROOT:
        return "shape=house,style=filled,fillcolor=lightgrey"
    if node.kind == NodeKind.SOLUTION_DIRECTORY:
        return "shape=folder"
    if node.kind == NodeKind.SOLUTION:
        return "shape=box,style=filled,fillcolor=lightblue"

    project = node.entity
    if isinstance(project, Project):
        if project.test_framework != TestFramework.NONE:
            return "shape=ellipse,style=filled,fillcolor=khaki"
        if project.output_type in (OutputType.EXE, OutputType.WIN_EXE):
            return "shape=ellipse,style=filled,fillcolor=palegreen"
    return "shape=ellipse"
