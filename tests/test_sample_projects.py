import xml.etree.ElementTree as ET

import pytest

from readonly_source_tree.repo_root import resolve
from readonly_source_tree.sample_projects import (
    CSHARP_LIBRARY_WITH_XML_DOC,
    DEFAULT_CSHARP_CLASS_LIBRARY,
    SampleProject,
    scenario_names,
)


@pytest.fixture
def extracted(tmp_path):
    project = SampleProject.extract(DEFAULT_CSHARP_CLASS_LIBRARY, base_dir=tmp_path)
    yield project
    project.cleanup()


def test_layout(extracted):
    assert extracted.name == DEFAULT_CSHARP_CLASS_LIBRARY
    assert extracted.project_file.is_file()
    assert extracted.project_dir.name == DEFAULT_CSHARP_CLASS_LIBRARY
    assert extracted.src_dir.name == "src"
    assert extracted.bin_dir == extracted.repo_dir / "bin"
    assert extracted.obj_dir == extracted.repo_dir / "obj"
    assert (extracted.project_dir / "Class1.cs").is_file()


def test_heuristic_scenario_marks_root_with_gitignore(extracted):
    assert (extracted.repo_dir / ".gitignore").is_file()
    assert not (extracted.src_dir / ".RepoSrcRoot").exists()
    assert resolve(extracted.project_dir, markers=[".gitignore"]).root == extracted.repo_dir


def test_explicit_scenario_marks_src(tmp_path):
    with SampleProject.extract(DEFAULT_CSHARP_CLASS_LIBRARY, explicit_src_root=True, base_dir=tmp_path) as project:
        assert (project.src_dir / ".RepoSrcRoot").is_file()
        assert not (project.repo_dir / ".gitignore").exists()
        assert resolve(project.project_dir, markers=["no-such-marker.rst-test"]).root == project.repo_dir
    assert not project.repo_dir.exists()


def test_xml_doc_scenario_generates_documentation(tmp_path):
    with SampleProject.extract(CSHARP_LIBRARY_WITH_XML_DOC, base_dir=tmp_path) as project:
        root = ET.parse(project.project_file).getroot()
        assert root.findtext("PropertyGroup/GenerateDocumentationFile") == "true"


@pytest.mark.parametrize("scenario", scenario_names())
def test_scenarios_pin_a_concrete_target_framework(tmp_path, scenario):
    with SampleProject.extract(scenario, base_dir=tmp_path) as project:
        framework = ET.parse(project.project_file).getroot().findtext("PropertyGroup/TargetFramework")
        assert framework == "net8.0"


def test_set_property(extracted):
    extracted.set_property("Platform", "x64")
    extracted.set_property("TargetFramework", "net9.0")
    root = ET.parse(extracted.project_file).getroot()
    assert root.findtext("PropertyGroup/Platform") == "x64"
    assert root.findtext("PropertyGroup/TargetFramework") == "net9.0"
    assert root.get("Sdk") == "Microsoft.NET.Sdk"


def test_unknown_scenario(tmp_path):
    with pytest.raises(ValueError, match="Unknown sample project"):
        SampleProject.extract("NoSuchProject", base_dir=tmp_path)
    assert list(tmp_path.iterdir()) == []


def test_scenario_names():
    assert scenario_names() == sorted([CSHARP_LIBRARY_WITH_XML_DOC, DEFAULT_CSHARP_CLASS_LIBRARY])
