"""
MSBuild fragments that keep bin/ and obj/ out of project directories.

Renders Directory.Build.props / Directory.Build.targets carrying the same
rules as output_paths.compute(), and installs them into the repository's
src/ directory so every project below it imports them.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .paths import (
    BIN_DIR_NAME,
    DEFAULT_CONFIGURATION,
    DEFAULT_PLATFORMS,
    OBJ_DIR_NAME,
    PROPS_FILE_NAME,
    TARGETS_FILE_NAME,
)
from .repo_root import RepositoryLayout, resolve
from .settings import Settings

log = logging.getLogger("readonly-source-tree.installer")

# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------

_GENERATED_MARK = "Generated by readonly-source-tree"

_HEADER = f"""\
<?xml version="1.0" encoding="utf-8"?>
<!-- {_GENERATED_MARK}. Run `rst install` to regenerate. -->
"""

_PROPS_TEMPLATE = _HEADER + """\
<Project>
  <PropertyGroup>
    <Configuration Condition=" '$(Configuration)' == '' ">{default_configuration}</Configuration>

    <RepoSrcRoot>$(MSBuildThisFileDirectory)</RepoSrcRoot>
    <RepoRoot>$([System.IO.Path]::GetFullPath('$(RepoSrcRoot)..{sep}'))</RepoRoot>
    <RepoBinRoot>$(RepoRoot){bin}{sep}</RepoBinRoot>
    <RepoObjRoot>$(RepoRoot){obj}{sep}</RepoObjRoot>

    <_RepoPlatformSegment Condition=" {platform_condition} ">$(Platform){sep}</_RepoPlatformSegment>

    <BaseOutputPath>..{sep}..{sep}{bin}{sep}</BaseOutputPath>
    <OutputPath>$(BaseOutputPath)$(_RepoPlatformSegment)$(Configuration){sep}$(MSBuildProjectName){sep}</OutputPath>
    <BaseIntermediateOutputPath>..{sep}..{sep}{obj}{sep}$(MSBuildProjectName){sep}</BaseIntermediateOutputPath>
    <IntermediateOutputPath>..{sep}..{sep}{obj}{sep}$(_RepoPlatformSegment)$(Configuration){sep}$(MSBuildProjectName){sep}</IntermediateOutputPath>

    <AppendTargetFrameworkToOutputPath>false</AppendTargetFrameworkToOutputPath>
    <AppendRuntimeIdentifierToOutputPath>false</AppendRuntimeIdentifierToOutputPath>
  </PropertyGroup>
</Project>
"""

_TARGETS_TEMPLATE = _HEADER + """\
<Project>
  <PropertyGroup>
    <!-- TargetDir is supposed to be an absolute path. -->
    <TargetDir>$(RepoBinRoot)$(_RepoPlatformSegment)$(Configuration){sep}$(MSBuildProjectName){sep}</TargetDir>
    <TargetPath>$(TargetDir)$(TargetFileName)</TargetPath>
  </PropertyGroup>
</Project>
"""


def _platform_condition() -> str:
    clauses = ["'$(Platform)' != ''"]
    clauses += [f"'$(Platform)' != '{p}'" for p in sorted(DEFAULT_PLATFORMS)]
    return " and ".join(clauses)


def render_props(sep: str = os.sep) -> str:
    return _PROPS_TEMPLATE.format(
        sep=sep,
        bin=BIN_DIR_NAME,
        obj=OBJ_DIR_NAME,
        default_configuration=DEFAULT_CONFIGURATION,
        platform_condition=_platform_condition(),
    )


def render_targets(sep: str = os.sep) -> str:
    return _TARGETS_TEMPLATE.format(sep=sep)


# ---------------------------------------------------------------------------
# Installation
# ---------------------------------------------------------------------------


@dataclass
class Installation:
    layout: RepositoryLayout
    props_file: Path
    targets_file: Path


def install(
    start_directory: Path | str,
    settings: Settings | None = None,
    sep: str = os.sep,
) -> Installation:
    """Resolve the repository above *start_directory* and write the fragments.

    The fragments land in the repository's src/ directory. Raises
    RepoRootNotFound if no root can be found, and RuntimeError if
    *start_directory* is not below that src/ directory.
    """
    settings = settings or Settings()
    start = Path(start_directory).resolve()
    layout = resolve(start, markers=settings.root_markers, src_root_marker=settings.src_root_marker)

    if start != layout.src_root and layout.src_root not in start.parents:
        raise RuntimeError(
            f"{start} is not below {layout.src_root}; projects must live under the repository's src directory"
        )

    props_file = layout.src_root / PROPS_FILE_NAME
    targets_file = layout.src_root / TARGETS_FILE_NAME
    for existing in (props_file, targets_file):
        if existing.exists() and _GENERATED_MARK not in existing.read_text(encoding="utf-8", errors="replace"):
            raise RuntimeError(f"Refusing to overwrite hand-written {existing}")

    props_file.write_text(render_props(sep), encoding="utf-8")
    targets_file.write_text(render_targets(sep), encoding="utf-8")
    log.info("Installed %s and %s into %s", PROPS_FILE_NAME, TARGETS_FILE_NAME, layout.src_root)

    return Installation(layout=layout, props_file=props_file, targets_file=targets_file)
