# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""CSV and DOT writers for an AnalysisResult.

Files written into the output directory:
- solutions.csv: one row per solution
- projects.csv: one row per project
- projects_to_packages.csv: one row per (project, package) pair
- analysis.dot: the reference graph, redundant edges drawn red and dotted

Any failure to create the directory or write a file raises OutputWriteError.
"""

import csv
import logging
import os
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set, TextIO, Union

from dnscan.config import Config
from dnscan.errors import OutputWriteError
from dnscan.graph import Edge, ReferenceGraph, node_label, node_style
from dnscan.models import AnalysisResult, InterestingFile, Project, Solution

logger = logging.getLogger(__name__)

SOLUTIONS_CSV = "solutions.csv"
PROJECTS_CSV = "projects.csv"
PROJECTS_TO_PACKAGES_CSV = "projects_to_packages.csv"
ANALYSIS_DOT = "analysis.dot"

REMOVED_EDGE_ATTRIBUTES = "color=red,style=dotted,penwidth=2"

SOLUTION_COLUMNS = [
    "Version",
    "Directory",
    "File",
    "IsValidUTF8",
    "LinkedProjectCount",
    "OrphanedProjectCount",
    "GitBranch",
    "GitSha",
    "GitCommitTime",
    "GitAuthor",
    "GitRemoteUrl",
]

PROJECT_COLUMNS = [
    "Solution",
    "Ownership",
    "Version",
    "Directory",
    "File",
    "IsValidUTF8",
    "OutputType",
    "XmlDoc",
    "TTFile",
    "EmbeddedDebugging",
    "LinkedSolutionInfo",
    "AutoGenerateBindingRedirects",
    "TargetFrameworks",
    "TestFramework",
    "UsesSpecFlow",
    "WebConfig",
    "AppConfig",
    "AppSettingsJson",
    "PackageJson",
    "PackagesConfig",
    "ProjectJson",
    "ReferencedAssemblyCount",
    "ProjectReferenceCount",
    "PackageCount",
]

PACKAGE_COLUMNS = [
    "Solution",
    "Version",
    "Directory",
    "File",
    "IsValidUTF8",
    "OutputType",
    "XmlDoc",
    "TTFile",
    "PkgName",
    "PkgClass",
    "PkgVersion",
    "PkgIsDev",
    "PkgIsPreview",
]


def _flag(value: bool) -> str:
    return "true" if value else "false"


def solution_row(sln: Solution) -> List[str]:
    git = sln.git_info
    return [
        sln.version,
        sln.directory,
        sln.path,
        _flag(sln.file_record.is_valid_utf8),
        str(sum(1 for _ in sln.linked_projects())),
        str(sum(1 for _ in sln.orphaned_projects())),
        git.branch if git else "",
        git.sha if git else "",
        git.commit_time if git else "",
        git.author_name if git else "",
        git.remote_url if git else "",
    ]


def project_row(sln: Solution, project: Project) -> List[str]:
    return [
        sln.path,
        project.ownership,
        project.version,
        project.file_record.directory,
        project.path,
        _flag(project.file_record.is_valid_utf8),
        project.output_type,
        project.xml_doc,
        _flag(project.tt_file),
        _flag(project.embedded_debugging),
        _flag(project.linked_solution_info),
        _flag(project.auto_generate_binding_redirects),
        ";".join(project.target_frameworks),
        project.test_framework,
        _flag(project.uses_specflow),
        *(project.file_status(name) for name in InterestingFile.ALL),
        str(len(project.referenced_assemblies)),
        str(len(project.referenced_projects)),
        str(len(project.packages)),
    ]


def package_rows(sln: Solution, project: Project) -> Iterable[List[str]]:
    for pkg in project.packages:
        yield [
            sln.path,
            project.version,
            project.file_record.directory,
            project.path,
            _flag(project.file_record.is_valid_utf8),
            project.output_type,
            project.xml_doc,
            _flag(project.tt_file),
            pkg.name,
            pkg.classification,
            pkg.version,
            _flag(pkg.development),
            _flag(pkg.is_preview),
        ]


def _write_csv(path: Path, header: List[str], rows: Iterable[List[str]]) -> None:
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            writer = csv.writer(f)
            writer.writerow(header)
            writer.writerows(rows)
    except OSError as e:
        raise OutputWriteError(str(path), str(e)) from e
    logger.info(f"Wrote {path}")


def write_solutions_csv(result: AnalysisResult, output_dir: Path) -> Path:
    path = output_dir / SOLUTIONS_CSV
    _write_csv(path, SOLUTION_COLUMNS, (solution_row(sln) for sln in result.solutions()))
    return path


def write_projects_csv(result: AnalysisResult, output_dir: Path) -> Path:
    path = output_dir / PROJECTS_CSV
    rows = (project_row(sln, p) for sln in result.solutions() for p in sln.projects)
    _write_csv(path, PROJECT_COLUMNS, rows)
    return path


def write_projects_to_packages_csv(result: AnalysisResult, output_dir: Path) -> Path:
    path = output_dir / PROJECTS_TO_PACKAGES_CSV
    rows = (row for sln in result.solutions() for p in sln.projects for row in package_rows(sln, p))
    _write_csv(path, PACKAGE_COLUMNS, rows)
    return path


# DOT


def apply_abbreviations(label: str, abbreviations: Dict[str, List[str]]) -> str:
    """Replace every search term with its abbreviation, in mapping order."""
    for replacement, search_terms in abbreviations.items():
        for term in search_terms:
            label = label.replace(term, replacement)
    return label


def _dot_escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')


def render_dot(
    out: TextIO,
    graph: ReferenceGraph,
    removed_edges: Optional[Set[Edge]] = None,
    abbreviations: Optional[Dict[str, List[str]]] = None,
) -> None:
    """Write `graph` as a DOT digraph.

    Kept edges are plain; removed edges are drawn with REMOVED_EDGE_ATTRIBUTES.
    """
    out.write("digraph {\n")

    for index, node in enumerate(graph.nodes):
        label = node_label(node)
        if abbreviations:
            label = apply_abbreviations(label, abbreviations)
        out.write(f'    {index} [label="{_dot_escape(label)}",{node_style(node)}]\n')

    for source, target in graph.edges():
        out.write(f"    {source} -> {target}\n")

    for source, target in sorted(removed_edges or ()):
        out.write(f"    {source} -> {target} [{REMOVED_EDGE_ATTRIBUTES}]\n")

    out.write("}\n")


def write_dot_file(
    path: Path,
    graph: ReferenceGraph,
    removed_edges: Optional[Set[Edge]] = None,
    abbreviations: Optional[Dict[str, List[str]]] = None,
) -> Path:
    try:
        with open(path, "w", encoding="utf-8") as f:
            render_dot(f, graph, removed_edges, abbreviations)
    except OSError as e:
        raise OutputWriteError(str(path), str(e)) from e
    logger.info(f"Wrote {path}")
    return path


def prepare_output_directory(output_dir: Union[str, Path]) -> Path:
    path = Path(output_dir)
    try:
        os.makedirs(path, exist_ok=True)
    except OSError as e:
        raise OutputWriteError(str(path), str(e)) from e
    return path


def write_csv_files(result: AnalysisResult, output_dir: Union[str, Path]) -> List[Path]:
    """Write all three CSV files. Returns their paths."""
    directory = prepare_output_directory(output_dir)
    return [
        write_solutions_csv(result, directory),
        write_projects_csv(result, directory),
        write_projects_to_packages_csv(result, directory),
    ]


def write_graph(
    graph: ReferenceGraph,
    removed_edges: Set[Edge],
    config: Config,
    output_dir: Union[str, Path],
) -> Path:
    directory = prepare_output_directory(output_dir)
    abbreviations = config.abbreviations if config.abbreviate_on_graphs else None
    return write_dot_file(directory / ANALYSIS_DOT, graph, removed_edges, abbreviations)
