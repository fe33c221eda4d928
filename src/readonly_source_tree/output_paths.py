"""
Output path derivation.

Maps a resolved repository layout plus the build's configuration, platform
and project name onto the MSBuild output properties:

    OutputPath              ../../bin/[<platform>/]<config>/<project>/
    IntermediateOutputPath  ../../obj/[<platform>/]<config>/<project>/
    TargetDir               <root>/bin/[<platform>/]<config>/<project>/
    TargetPath              TargetDir + target file name

OutputPath and IntermediateOutputPath are relative to the project directory;
TargetDir, and everything derived from it, is absolute. compute() does no I/O.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from .paths import (
    BIN_DIR_NAME,
    DEFAULT_CONFIGURATION,
    DEFAULT_PLATFORMS,
    DEFAULT_TARGET_EXTENSION,
    DOCUMENTATION_EXTENSION,
    OBJ_DIR_NAME,
)
from .repo_root import RepositoryLayout, resolve
from .settings import Settings


@dataclass(frozen=True)
class BuildContext:
    """Per-evaluation inputs coming from the build engine."""

    project_directory: Path
    project_name: str
    configuration: str = DEFAULT_CONFIGURATION
    platform: str | None = None
    target_file_name: str = ""
    documentation_file: bool = False

    @staticmethod
    def from_properties(
        project_directory: Path | str,
        properties: Mapping[str, str],
        environ: Mapping[str, str] | None = None,
    ) -> BuildContext:
        """Build a context from an explicit map of global build properties.

        Configuration falls back to the ``Configuration`` environment value,
        then to Debug. Nothing is read from the process environment unless
        *environ* is passed in.
        """
        environ = environ or {}
        project_directory = Path(project_directory)

        name = properties.get("MSBuildProjectName") or project_directory.name
        configuration = (
            properties.get("Configuration")
            or environ.get("Configuration")
            or DEFAULT_CONFIGURATION
        )
        platform = properties.get("Platform") or None

        target_file_name = properties.get("TargetFileName", "")
        if not target_file_name:
            target_name = properties.get("TargetName") or name
            target_ext = properties.get("TargetExt") or DEFAULT_TARGET_EXTENSION
            target_file_name = target_name + target_ext

        doc = properties.get("GenerateDocumentationFile", "")

        return BuildContext(
            project_directory=project_directory,
            project_name=name,
            configuration=configuration,
            platform=platform,
            target_file_name=target_file_name,
            documentation_file=doc.strip().lower() == "true",
        )


@dataclass(frozen=True)
class ResolvedPaths:
    output_path: str
    intermediate_output_path: str
    target_dir: str
    target_path: str
    built_output: str
    documentation_output: str | None = None

    def as_properties(self) -> dict[str, str]:
        """Property and output-group names as the build engine sees them."""
        props = {
            "OutputPath": self.output_path,
            "IntermediateOutputPath": self.intermediate_output_path,
            "TargetDir": self.target_dir,
            "TargetPath": self.target_path,
            "BuiltProjectOutputGroup": self.built_output,
        }
        if self.documentation_output is not None:
            props["DocumentationProjectOutputGroup"] = self.documentation_output
        return props


def platform_segment(platform: str | None) -> str | None:
    """The path segment for *platform*, or None for the default platform."""
    if not platform or platform in DEFAULT_PLATFORMS:
        return None
    return platform


def _join(sep: str, *parts: str | None) -> str:
    return sep.join(p for p in parts if p)


def compute(layout: RepositoryLayout, ctx: BuildContext, sep: str = os.sep) -> ResolvedPaths:
    plat = platform_segment(ctx.platform)
    tail = (plat, ctx.configuration, ctx.project_name)

    output_path = _join(sep, "..", "..", BIN_DIR_NAME, *tail) + sep
    intermediate_output_path = _join(sep, "..", "..", OBJ_DIR_NAME, *tail) + sep

    target_dir = _join(sep, str(layout.bin_root), *tail) + sep
    target_path = target_dir + ctx.target_file_name

    built_output = _join(sep, str(layout.obj_root), *tail, ctx.target_file_name)

    documentation_output = None
    if ctx.documentation_file:
        base_name = os.path.splitext(ctx.target_file_name)[0]
        documentation_output = target_dir + base_name + DOCUMENTATION_EXTENSION

    return ResolvedPaths(
        output_path=output_path,
        intermediate_output_path=intermediate_output_path,
        target_dir=target_dir,
        target_path=target_path,
        built_output=built_output,
        documentation_output=documentation_output,
    )


def evaluate(
    project_directory: Path | str,
    properties: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    sep: str = os.sep,
) -> tuple[RepositoryLayout, ResolvedPaths]:
    """Resolve the layout for *project_directory* and compute its paths."""
    settings = settings or Settings()
    project_directory = Path(project_directory).resolve()
    layout = resolve(
        project_directory,
        markers=settings.root_markers,
        src_root_marker=settings.src_root_marker,
    )
    ctx = BuildContext.from_properties(project_directory, properties or {}, environ)
    return layout, compute(layout, ctx, sep=sep)
