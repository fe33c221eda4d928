"""
Sample projects for build integration tests.

Each scenario is extracted into its own randomly named temporary repository:

    <tmp>/
      .gitignore            (or src/.RepoSrcRoot with explicit_src_root)
      src/<Scenario>/<Scenario>.csproj
"""

from __future__ import annotations

import logging
import shutil
import tempfile
import xml.etree.ElementTree as ET
from pathlib import Path

from .paths import BIN_DIR_NAME, OBJ_DIR_NAME, SRC_DIR_NAME, SRC_ROOT_MARKER

log = logging.getLogger("readonly-source-tree.sample_projects")

DEFAULT_CSHARP_CLASS_LIBRARY = "DefaultCSharpClassLibrary"
CSHARP_LIBRARY_WITH_XML_DOC = "CSharpLibraryWithXmlDoc"

# ---------------------------------------------------------------------------
# Scenario templates
# ---------------------------------------------------------------------------

_CSPROJ_TEMPLATE = """\
<Project Sdk="Microsoft.NET.Sdk">
  <PropertyGroup>
    <TargetFramework>net8.0</TargetFramework>
{extra_properties}  </PropertyGroup>
</Project>
"""

_CLASS_TEMPLATE = """\
namespace {namespace}
{{
    /// <summary>
    /// A type that exists so the project has something to compile.
    /// </summary>
    public class Class1
    {{
    }}
}}
"""

_SCENARIOS: dict[str, dict[str, str]] = {
    DEFAULT_CSHARP_CLASS_LIBRARY: {},
    CSHARP_LIBRARY_WITH_XML_DOC: {"GenerateDocumentationFile": "true"},
}


def scenario_names() -> list[str]:
    return sorted(_SCENARIOS)


def _scenario_files(name: str) -> dict[str, str]:
    try:
        extra = _SCENARIOS[name]
    except KeyError:
        raise ValueError(f"Unknown sample project {name!r}; expected one of {scenario_names()}") from None
    extra_properties = "".join(f"    <{k}>{v}</{k}>\n" for k, v in extra.items())
    return {
        f"{name}.csproj": _CSPROJ_TEMPLATE.format(extra_properties=extra_properties),
        "Class1.cs": _CLASS_TEMPLATE.format(namespace=name),
    }


# ---------------------------------------------------------------------------
# Extracted project
# ---------------------------------------------------------------------------


class SampleProject:
    """A scenario extracted into a throwaway repository."""

    def __init__(self, project_file: Path) -> None:
        self.project_file = project_file

    @property
    def name(self) -> str:
        return self.project_file.stem

    @property
    def project_dir(self) -> Path:
        return self.project_file.parent

    @property
    def src_dir(self) -> Path:
        return self.project_dir.parent

    @property
    def repo_dir(self) -> Path:
        return self.src_dir.parent

    @property
    def bin_dir(self) -> Path:
        return self.repo_dir / BIN_DIR_NAME

    @property
    def obj_dir(self) -> Path:
        return self.repo_dir / OBJ_DIR_NAME

    @classmethod
    def extract(
        cls,
        name: str,
        explicit_src_root: bool = False,
        base_dir: Path | None = None,
    ) -> SampleProject:
        files = _scenario_files(name)

        repo_dir = Path(tempfile.mkdtemp(prefix="rst-", dir=base_dir)).resolve()
        src_dir = repo_dir / SRC_DIR_NAME
        src_dir.mkdir()
        if explicit_src_root:
            (src_dir / SRC_ROOT_MARKER).write_text("")
        else:
            (repo_dir / ".gitignore").write_text("")

        project_dir = src_dir / name
        project_dir.mkdir()
        for file_name, content in files.items():
            (project_dir / file_name).write_text(content, encoding="utf-8")

        log.debug("Extracted %s into %s", name, repo_dir)
        return cls(project_dir / f"{name}.csproj")

    def set_property(self, name: str, value: str) -> None:
        """Set a property in the project file's first PropertyGroup."""
        tree = ET.parse(self.project_file)
        root = tree.getroot()
        group = root.find("PropertyGroup")
        if group is None:
            group = ET.SubElement(root, "PropertyGroup")
        prop = group.find(name)
        if prop is None:
            prop = ET.SubElement(group, name)
        prop.text = value
        tree.write(self.project_file, encoding="utf-8")

    def cleanup(self) -> None:
        # The whole temporary repository was created by extract().
        shutil.rmtree(self.repo_dir, ignore_errors=True)

    def __enter__(self) -> SampleProject:
        return self

    def __exit__(self, *exc: object) -> None:
        self.cleanup()
