import os

import orjson

from readonly_source_tree.cli import main


def _run(capsys, *argv) -> tuple[int, dict]:
    code = main(list(argv))
    out = capsys.readouterr().out
    return code, (orjson.loads(out) if out.strip() else {})


def test_resolve(capsys, repo, project_dir, markers):
    code, data = _run(capsys, "--marker", markers[0], "resolve", str(project_dir))
    assert code == 0
    assert data == {
        "RepoRoot": str(repo),
        "RepoSrcRoot": str(repo / "src"),
        "RepoBinRoot": str(repo / "bin"),
        "RepoObjRoot": str(repo / "obj"),
    }


def test_resolve_from_repository_root(capsys, monkeypatch, repo, markers):
    monkeypatch.chdir(repo)
    code, data = _run(capsys, "--marker", markers[0], "resolve")
    assert code == 0
    assert data["RepoRoot"] == str(repo)


def test_paths_with_platform(capsys, repo, project_dir, markers):
    code, data = _run(
        capsys, "--marker", markers[0], "paths", str(project_dir),
        "-c", "Release", "-p", "x64", "--sep", "\\", "--doc",
    )
    assert code == 0
    assert data["OutputPath"] == "..\\..\\bin\\x64\\Release\\Foo\\"
    assert data["IntermediateOutputPath"] == "..\\..\\obj\\x64\\Release\\Foo\\"
    assert data["TargetPath"].endswith("Foo.dll")
    assert data["DocumentationProjectOutputGroup"].endswith("Foo.xml")


def test_paths_configuration_from_environment(capsys, monkeypatch, project_dir, markers):
    monkeypatch.setenv("Configuration", "Staging")
    code, data = _run(capsys, "--marker", markers[0], "paths", str(project_dir))
    assert code == 0
    assert data["OutputPath"] == os.sep.join(["..", "..", "bin", "Staging", "Foo"]) + os.sep


def test_markers_from_environment(capsys, monkeypatch, repo, project_dir, markers):
    monkeypatch.setenv("RST_ROOT_MARKERS", markers[0])
    code, data = _run(capsys, "resolve", str(project_dir))
    assert code == 0
    assert data["RepoRoot"] == str(repo)


def test_install(capsys, repo, project_dir, markers):
    code, data = _run(capsys, "--marker", markers[0], "install", str(project_dir))
    assert code == 0
    assert data["props"] == str(repo / "src" / "Directory.Build.props")
    assert (repo / "src" / "Directory.Build.targets").is_file()


def test_missing_root_exits_with_2(capsys, tmp_path):
    project = tmp_path / "src" / "Foo"
    project.mkdir(parents=True)
    code, data = _run(capsys, "--marker", "no-such-marker.rst-test", "resolve", str(project))
    assert code == 2
    assert data == {}
