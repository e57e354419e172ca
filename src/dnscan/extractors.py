# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Pattern-based extraction of facts from solution and project files.

Project and solution files are read as loosely formatted text rather than
parsed as XML: real-world files are inconsistent enough (mixed casing,
attributes spread over several lines, self-closing and block elements
alternating within one file) that a handful of targeted patterns is more
robust than a strict parser.

All patterns are compiled once into an ExtractionPatterns object which is
passed to the extraction functions. Element and attribute names are matched
case-insensitively.

Flow: FileRecord text -> extract_* functions -> Project / Solution
"""

import logging
import os
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Pattern, Sequence

from dnscan.config import PackageGroup, default_package_groups
from dnscan.file_loader import FileLoader
from dnscan.models import (
    FileStatus,
    InterestingFile,
    OutputType,
    Package,
    Project,
    ProjectVersion,
    Solution,
    TestFramework,
    VisualStudioVersion,
    XmlDoc,
    sorted_unique_packages,
)
from dnscan.path_classifier import ascii_lower, filename

logger = logging.getLogger(__name__)

SDK_WEB_PROLOG = '<Project Sdk="Microsoft.NET.Sdk.Web">'
SDK_PROLOG = '<Project Sdk="Microsoft.NET.Sdk">'
OLD_PROLOG = "<Project ToolsVersion="

UNKNOWN_PACKAGE_VERSION = "unknown"

# Checked in order, first match wins.
VISUAL_STUDIO_MARKERS = (
    ("# Visual Studio 14", VisualStudioVersion.VS2015),
    ("# Visual Studio 15", VisualStudioVersion.VS2017),
    ("# Visual Studio Version 16", VisualStudioVersion.VS2019),
)

# (package name prefix, framework), checked in priority order.
TEST_FRAMEWORK_PREFIXES = (
    ("xunit.", TestFramework.XUNIT),
    ("nunit.", TestFramework.NUNIT),
    ("mstest.testframework", TestFramework.MSTEST),
)

_I = re.IGNORECASE
_IS = re.IGNORECASE | re.DOTALL


def _include_pattern(name: str) -> Pattern[str]:
    return re.compile(r'\sInclude="' + re.escape(name) + r'"\s*/?>', _I)


class ExtractionPatterns:
    """Compiled patterns shared by all extraction functions.

    Build once per scan (or use default_patterns()) and pass it down; the
    object is immutable after construction and safe to share across threads.
    """

    def __init__(self) -> None:
        # Solution files
        self.mentioned_project = re.compile(r'"(?P<projpath>[^"]+\.csproj)"', _I)

        # Output kind, checked Library, Exe, WinExe
        self.output_types = (
            (re.compile(r"<OutputType>\s*Library\s*</OutputType>", _I), OutputType.LIBRARY),
            (re.compile(r"<OutputType>\s*Exe\s*</OutputType>", _I), OutputType.EXE),
            (re.compile(r"<OutputType>\s*WinExe\s*</OutputType>", _I), OutputType.WIN_EXE),
        )

        self.xml_doc_debug = re.compile(
            r"<DocumentationFile>bin\\debug\\.*?\.xml</DocumentationFile>", _I
        )
        self.xml_doc_release = re.compile(
            r"<DocumentationFile>bin\\release\\.*?\.xml</DocumentationFile>", _I
        )

        self.tt_file = re.compile(r'<None\s+(?:Include|Update)="[^"]*?\.tt"', _I)
        self.nuspec_file = re.compile(r'<None\s+(?:Include|Update)="[^"]*?\.nuspec"', _I)
        self.debug_type_embedded = re.compile(r"<DebugType>\s*embedded\s*</DebugType>", _I)
        self.embed_all_sources = re.compile(r"<EmbedAllSources>\s*true\s*</EmbedAllSources>", _I)
        self.linked_solution_info = re.compile(r"[ <]Link.*?SolutionInfo\.cs.*?(?:</|/>)", _I)
        self.binding_redirects = re.compile(
            r"<AutoGenerateBindingRedirects>\s*true\s*</AutoGenerateBindingRedirects>", _I
        )

        self.referenced_assembly = re.compile(r'<Reference\s+Include="(?P<name>[^"]*?)"\s*/>', _I)
        self.project_reference = re.compile(r'<ProjectReference\s+Include="(?P<path>[^"]+)"', _I)

        self.old_target_framework = re.compile(
            r"<TargetFrameworkVersion>(?P<tf>.*?)</TargetFrameworkVersion>", _I
        )
        self.sdk_single_target_framework = re.compile(
            r"<TargetFramework>(?P<tf>.*?)</TargetFramework>", _I
        )
        self.sdk_multi_target_framework = re.compile(
            r"<TargetFrameworks>(?P<tfs>.*?)</TargetFrameworks>", _I
        )

        # The PackageReference element runs from its name attribute to the
        # nearest close, whether self-closing or a block. All of these occur:
        #   <PackageReference Include="A" Version="1.2.3" />
        #   <PackageReference Include="B">
        #       <Version>2.1.4</Version>
        #   </PackageReference>
        #   <PackageReference Include="C" Version="3.3.1">
        #       <PrivateAssets>all</PrivateAssets>
        #   </PackageReference>
        # The version is found in a second pass over the remainder.
        self.sdk_package = re.compile(
            r'<PackageReference\s+Include="(?P<name>[^"]+)"(?P<rest>.*?)(?:/>|</PackageReference>)',
            _IS,
        )
        self.sdk_version_attribute = re.compile(r'(?<![\w.])Version\s*=\s*"(?P<version>[^"]+)"', _I)
        self.sdk_version_element = re.compile(r"<Version>\s*(?P<version>[^<]+?)\s*</Version>", _I)
        self.private_assets = re.compile(r"PrivateAssets\s*[>=]", _I)

        # packages.config
        self.packages_config_element = re.compile(r"<package\b(?P<attrs>[^>]*?)/?>", _I)
        self.packages_config_id = re.compile(r'\bid\s*=\s*"(?P<value>[^"]*)"', _I)
        self.packages_config_version = re.compile(r'\bversion\s*=\s*"(?P<value>[^"]*)"', _I)
        self.packages_config_development = re.compile(r'\bdevelopmentDependency\s*=\s*"true"', _I)

        self.includes = {name: _include_pattern(name) for name in InterestingFile.ALL}


@lru_cache(maxsize=1)
def default_patterns() -> ExtractionPatterns:
    return ExtractionPatterns()


class PackageClassifier:
    """Assigns packages to named groups using ordered (pattern, name) rules.

    The first matching rule wins. The rule list always ends in a catch-all,
    so classify() never returns an empty name.
    """

    CATCH_ALL = PackageGroup("Third Party", ".*")

    def __init__(self, groups: Optional[Sequence[PackageGroup]] = None):
        rules = list(groups) if groups is not None else default_package_groups()
        if not rules or not rules[-1].is_catch_all():
            rules.append(self.CATCH_ALL)
        self.groups = rules

    def classify(self, package_name: str) -> str:
        for group in self.groups:
            if group.matches(package_name):
                return group.name
        return self.CATCH_ALL.name


# Solution extraction


def extract_visual_studio_version(contents: str) -> str:
    for marker, version in VISUAL_STUDIO_MARKERS:
        if marker in contents:
            return version
    return VisualStudioVersion.UNKNOWN


def to_host_separators(raw_path: str) -> str:
    """Solution and project files always use Windows separators, even on Linux."""
    if os.sep == "/":
        return raw_path.replace("\\", "/")
    return raw_path.replace("/", os.sep)


def normalize_relative_path(base_dir: str, raw_path: str) -> str:
    """Resolve `raw_path` against `base_dir` and collapse "." and ".." lexically."""
    return os.path.normpath(os.path.join(base_dir, to_host_separators(raw_path)))


def extract_mentioned_projects(
    sln_dir: str, contents: str, patterns: Optional[ExtractionPatterns] = None
) -> List[str]:
    """Absolute, normalized paths of all project files quoted in a solution."""
    patterns = patterns or default_patterns()
    found = {
        normalize_relative_path(sln_dir, m.group("projpath"))
        for m in patterns.mentioned_project.finditer(contents)
    }
    return sorted(found)


# Project extraction


def extract_project_version(contents: str) -> str:
    """Detect the project dialect. The web marker is checked before the plain SDK one."""
    if SDK_WEB_PROLOG in contents:
        return ProjectVersion.SDK_WEB
    if SDK_PROLOG in contents:
        return ProjectVersion.SDK
    if OLD_PROLOG in contents:
        return ProjectVersion.OLD_STYLE
    return ProjectVersion.UNKNOWN


def extract_output_type(contents: str, patterns: Optional[ExtractionPatterns] = None) -> str:
    patterns = patterns or default_patterns()
    for regex, output_type in patterns.output_types:
        if regex.search(contents):
            return output_type
    # Library is the build tool's own default.
    return OutputType.LIBRARY


def extract_xml_doc(contents: str, patterns: Optional[ExtractionPatterns] = None) -> str:
    patterns = patterns or default_patterns()
    debug = bool(patterns.xml_doc_debug.search(contents))
    release = bool(patterns.xml_doc_release.search(contents))
    if debug and release:
        return XmlDoc.BOTH
    if debug:
        return XmlDoc.DEBUG
    if release:
        return XmlDoc.RELEASE
    return XmlDoc.NONE


def extract_tt_file(contents: str, patterns: Optional[ExtractionPatterns] = None) -> bool:
    """A text template alongside a .nuspec file."""
    patterns = patterns or default_patterns()
    return bool(patterns.tt_file.search(contents) and patterns.nuspec_file.search(contents))


def extract_embedded_debugging(
    contents: str, version: str, patterns: Optional[ExtractionPatterns] = None
) -> bool:
    """SDK projects only; both DebugType=embedded and EmbedAllSources=true are required."""
    if version not in ProjectVersion.SDK_STYLES:
        return False
    patterns = patterns or default_patterns()
    return bool(
        patterns.debug_type_embedded.search(contents)
        and patterns.embed_all_sources.search(contents)
    )


def extract_linked_solution_info(
    contents: str, patterns: Optional[ExtractionPatterns] = None
) -> bool:
    patterns = patterns or default_patterns()
    return bool(patterns.linked_solution_info.search(contents))


def extract_auto_generate_binding_redirects(
    contents: str, patterns: Optional[ExtractionPatterns] = None
) -> bool:
    patterns = patterns or default_patterns()
    return bool(patterns.binding_redirects.search(contents))


def extract_referenced_assemblies(
    contents: str, patterns: Optional[ExtractionPatterns] = None
) -> List[str]:
    patterns = patterns or default_patterns()
    return sorted({m.group("name") for m in patterns.referenced_assembly.finditer(contents)})


def extract_target_frameworks(
    contents: str, version: str, patterns: Optional[ExtractionPatterns] = None
) -> List[str]:
    patterns = patterns or default_patterns()

    if version == ProjectVersion.OLD_STYLE:
        return [m.group("tf").strip() for m in patterns.old_target_framework.finditer(contents)]

    if version in ProjectVersion.SDK_STYLES:
        single = [
            m.group("tf").strip() for m in patterns.sdk_single_target_framework.finditer(contents)
        ]
        if single:
            return single

        result = []
        for m in patterns.sdk_multi_target_framework.finditer(contents):
            result.extend(tf.strip() for tf in m.group("tfs").split(";") if tf.strip())
        return result

    return []


def extract_project_references(
    contents: str, project_path: str, patterns: Optional[ExtractionPatterns] = None
) -> List[str]:
    """Paths of the projects this project references, resolved against its directory."""
    patterns = patterns or default_patterns()
    project_dir = os.path.dirname(project_path)
    return [
        normalize_relative_path(project_dir, m.group("path"))
        for m in patterns.project_reference.finditer(contents)
    ]


def find_other_file(other_files: Iterable[str], interesting_file: str) -> Optional[str]:
    """The on-disk path of `interesting_file` among `other_files`, if present."""
    for path in other_files:
        if ascii_lower(filename(path)) == interesting_file:
            return path
    return None


def extract_file_status(
    contents: str,
    other_files: Iterable[str],
    interesting_file: str,
    patterns: Optional[ExtractionPatterns] = None,
) -> str:
    """Combine "declared in the project" and "exists next to the project"."""
    patterns = patterns or default_patterns()
    declared = bool(patterns.includes[interesting_file].search(contents))
    on_disk = find_other_file(other_files, interesting_file) is not None
    return FileStatus.from_flags(declared, on_disk)


def _sdk_package_version(rest: str, name: str, patterns: ExtractionPatterns) -> str:
    # The attribute form takes precedence over a nested element.
    m = patterns.sdk_version_attribute.search(rest) or patterns.sdk_version_element.search(rest)
    if m:
        return m.group("version").strip()
    logger.warning(f"No version found for package reference {name!r}, recording as unknown")
    return UNKNOWN_PACKAGE_VERSION


def extract_sdk_packages(
    contents: str,
    classifier: Optional[PackageClassifier] = None,
    patterns: Optional[ExtractionPatterns] = None,
) -> List[Package]:
    classifier = classifier or PackageClassifier()
    patterns = patterns or default_patterns()
    packages = []
    for m in patterns.sdk_package.finditer(contents):
        name = m.group("name")
        rest = m.group("rest")
        packages.append(
            Package(
                name=name,
                version=_sdk_package_version(rest, name, patterns),
                development=bool(patterns.private_assets.search(rest)),
                classification=classifier.classify(name),
            )
        )
    return sorted_unique_packages(packages)


def extract_packages_config(
    contents: str,
    classifier: Optional[PackageClassifier] = None,
    patterns: Optional[ExtractionPatterns] = None,
) -> List[Package]:
    """Parse the <package id=".." version=".." /> elements of a packages.config."""
    classifier = classifier or PackageClassifier()
    patterns = patterns or default_patterns()
    packages = []
    for m in patterns.packages_config_element.finditer(contents):
        attrs = m.group("attrs")
        id_match = patterns.packages_config_id.search(attrs)
        if not id_match:
            continue
        version_match = patterns.packages_config_version.search(attrs)
        name = id_match.group("value")
        packages.append(
            Package(
                name=name,
                version=version_match.group("value") if version_match else UNKNOWN_PACKAGE_VERSION,
                development=bool(patterns.packages_config_development.search(attrs)),
                classification=classifier.classify(name),
            )
        )
    return sorted_unique_packages(packages)


def extract_packages(
    contents: str,
    version: str,
    other_files: Iterable[str],
    file_loader: FileLoader,
    classifier: Optional[PackageClassifier] = None,
    patterns: Optional[ExtractionPatterns] = None,
) -> List[Package]:
    """Packages for either dialect.

    SDK projects declare packages inline; old-style projects list them in a
    packages.config next to the project file.
    """
    if version in ProjectVersion.SDK_STYLES:
        return extract_sdk_packages(contents, classifier, patterns)

    if version == ProjectVersion.OLD_STYLE:
        pc_path = find_other_file(other_files, InterestingFile.PACKAGES_CONFIG)
        if pc_path is None:
            return []
        pc_contents = file_loader.try_read(pc_path)
        if pc_contents is None:
            logger.warning(f"Could not read {pc_path}, no packages recorded")
            return []
        return extract_packages_config(pc_contents, classifier, patterns)

    return []


def extract_test_framework(packages: Iterable[Package]) -> str:
    names = [p.name.lower() for p in packages]
    for prefix, framework in TEST_FRAMEWORK_PREFIXES:
        bare = prefix.rstrip(".")
        if any(n.startswith(prefix) or n == bare for n in names):
            return framework
    return TestFramework.NONE


def extract_uses_specflow(packages: Iterable[Package]) -> bool:
    return any("specflow" in p.name.lower() for p in packages)


# Entity construction


def load_solution(
    path: str, file_loader: FileLoader, patterns: Optional[ExtractionPatterns] = None
) -> Solution:
    """Read a solution file and extract its dialect and mentioned projects."""
    record = file_loader.load_record(path)
    if not record.is_valid_utf8:
        logger.warning(f"Solution {path} is unreadable or not valid UTF-8")
    return Solution(
        file_record=record,
        version=extract_visual_studio_version(record.contents),
        mentioned_projects=extract_mentioned_projects(record.directory, record.contents, patterns),
    )


def load_project(
    path: str,
    other_files: List[str],
    file_loader: FileLoader,
    classifier: Optional[PackageClassifier] = None,
    patterns: Optional[ExtractionPatterns] = None,
) -> Project:
    """Read a project file and extract every fact about it.

    Args:
        path: The project file.
        other_files: Interesting files found in the same directory.
        file_loader: Source of file text.
        classifier: Package grouping rules.
        patterns: Compiled extraction patterns.
    """
    patterns = patterns or default_patterns()
    classifier = classifier or PackageClassifier()
    record = file_loader.load_record(path)

    if not record.is_valid_utf8:
        logger.warning(f"Project {path} is unreadable or not valid UTF-8")
        return Project(file_record=record, other_files=other_files)

    text = record.contents
    version = extract_project_version(text)
    packages = extract_packages(text, version, other_files, file_loader, classifier, patterns)

    def status(name: str) -> str:
        return extract_file_status(text, other_files, name, patterns)

    return Project(
        file_record=record,
        other_files=other_files,
        version=version,
        output_type=extract_output_type(text, patterns),
        xml_doc=extract_xml_doc(text, patterns),
        tt_file=extract_tt_file(text, patterns),
        embedded_debugging=extract_embedded_debugging(text, version, patterns),
        linked_solution_info=extract_linked_solution_info(text, patterns),
        auto_generate_binding_redirects=extract_auto_generate_binding_redirects(text, patterns),
        referenced_assemblies=extract_referenced_assemblies(text, patterns),
        target_frameworks=extract_target_frameworks(text, version, patterns),
        referenced_projects=extract_project_references(text, path, patterns),
        web_config=status(InterestingFile.WEB_CONFIG),
        app_config=status(InterestingFile.APP_CONFIG),
        app_settings_json=status(InterestingFile.APP_SETTINGS_JSON),
        package_json=status(InterestingFile.PACKAGE_JSON),
        packages_config=status(InterestingFile.PACKAGES_CONFIG),
        project_json=status(InterestingFile.PROJECT_JSON),
        packages=packages,
        test_framework=extract_test_framework(packages),
        uses_specflow=extract_uses_specflow(packages),
    )
