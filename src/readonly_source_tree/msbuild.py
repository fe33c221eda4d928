"""
Thin driver around the external `dotnet msbuild` engine.

Used by the integration tests to:
  - evaluate properties without building (-getProperty)
  - read output groups from target results (-getTargetResult)
  - restore, build and rebuild projects, capturing the normal-verbosity log
  - assert on build success, including that no project was built twice
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from functools import cached_property
from pathlib import Path

import orjson

from .settings import Settings

log = logging.getLogger("readonly-source-tree.msbuild")


# ---------------------------------------------------------------------------
# Log parsing
# ---------------------------------------------------------------------------

# /path/Foo.cs(12,5): error CS1002: ; expected [/path/Foo.csproj]
_DIAGNOSTIC_RE = re.compile(
    r"^\s*(?P<origin>.*?):\s*(?P<kind>error|warning)\s+(?P<code>[A-Za-z]+\d+)\s*:\s*(?P<message>.*?)\s*$",
)

# Project "/a/A.csproj" on node 1 (Build target(s)).
_ROOT_START_RE = re.compile(r'^\s*Project "(?P<project>[^"]+)" on node \d+')

# Project "/a/A.csproj" (1) is building "/b/B.csproj" (2:2) on node 1 (default targets).
_CHILD_START_RE = re.compile(
    r'^\s*Project "(?P<parent>[^"]+)" \((?P<parent_id>\d+)(?::\d+)?\) is building '
    r'"(?P<project>[^"]+)" \((?P<id>\d+)(?::\d+)?\)',
)

_ROOT_INSTANCE_ID = "1"


@dataclass
class Diagnostic:
    kind: str  # error | warning
    code: str
    message: str
    origin: str = ""


@dataclass
class ProjectStart:
    """One "Project ... is building ..." line from the build log."""

    project: str
    instance_id: str
    parent: str | None = None
    parent_id: str | None = None


def parse_diagnostics(lines: Iterable[str]) -> list[Diagnostic]:
    """Errors and warnings in log order; the build summary repeats are dropped."""
    seen: set[tuple[str, str, str, str]] = set()
    out: list[Diagnostic] = []
    for line in lines:
        m = _DIAGNOSTIC_RE.match(line)
        if not m:
            continue
        key = (m.group("kind"), m.group("code"), m.group("message"), m.group("origin").strip())
        if key in seen:
            continue
        seen.add(key)
        out.append(Diagnostic(kind=key[0], code=key[1], message=key[2], origin=key[3]))
    return out


def parse_project_starts(lines: Iterable[str]) -> list[ProjectStart]:
    starts: list[ProjectStart] = []
    for line in lines:
        m = _CHILD_START_RE.match(line)
        if m:
            starts.append(ProjectStart(
                project=m.group("project"),
                instance_id=m.group("id"),
                parent=m.group("parent"),
                parent_id=m.group("parent_id"),
            ))
            continue
        m = _ROOT_START_RE.match(line)
        if m:
            starts.append(ProjectStart(project=m.group("project"), instance_id=_ROOT_INSTANCE_ID))
    return starts


def find_projects_built_twice(starts: Iterable[ProjectStart]) -> list[str]:
    """Describe every project built under more than one instance id.

    A second instance of the same project file means it was requested with a
    different set of global properties, which is an over-build.
    """
    first_by_project: dict[str, ProjectStart] = {}
    problems: list[str] = []
    for start in starts:
        key = start.project.lower()
        first = first_by_project.setdefault(key, start)
        if first.instance_id == start.instance_id:
            continue
        problems.append(
            f'Project "{start.project}" was built twice. '
            f'The first build request came from "{first.parent or "the command line"}" '
            f"(instance {first.instance_id}); "
            f'the subsequent build request came from "{start.parent or "the command line"}" '
            f"(instance {start.instance_id})."
        )
    return problems


# ---------------------------------------------------------------------------
# Build result
# ---------------------------------------------------------------------------


@dataclass
class BuildResult:
    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @cached_property
    def log_lines(self) -> list[str]:
        return (self.stdout + "\n" + self.stderr).splitlines()

    @cached_property
    def diagnostics(self) -> list[Diagnostic]:
        return parse_diagnostics(self.log_lines)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == "error"]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.kind == "warning"]

    @cached_property
    def project_starts(self) -> list[ProjectStart]:
        return parse_project_starts(self.log_lines)

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    def assert_successful_build(self) -> None:
        if self.errors:
            first = self.errors[0]
            raise AssertionError(f"Build reported {len(self.errors)} error(s); first: {first.code}: {first.message}")
        self.assert_no_targets_executed_twice()
        if self.returncode != 0:
            raise AssertionError(f"Build exited with {self.returncode}:\n{self.stderr or self.stdout[-2000:]}")

    def assert_unsuccessful_build(self) -> None:
        if self.returncode == 0:
            raise AssertionError("Build was expected to fail but succeeded")
        if not self.errors:
            raise AssertionError("Build failed without reporting any error")

    def assert_no_targets_executed_twice(self) -> None:
        problems = find_projects_built_twice(self.project_starts)
        if problems:
            raise AssertionError("\n".join(problems))


# ---------------------------------------------------------------------------
# dotnet invocation
# ---------------------------------------------------------------------------


def dotnet_available(settings: Settings | None = None) -> bool:
    settings = settings or Settings()
    return shutil.which(settings.dotnet) is not None


_DOTNET_ENV = {
    "DOTNET_NOLOGO": "1",
    "DOTNET_SKIP_FIRST_TIME_EXPERIENCE": "1",
    "DOTNET_CLI_TELEMETRY_OPTOUT": "1",
}


def _property_args(properties: Mapping[str, str] | None) -> list[str]:
    return [f"-p:{name}={value}" for name, value in (properties or {}).items()]


def _run(cmd: list[str], cwd: Path, timeout: int) -> subprocess.CompletedProcess:
    """Run a command with logging; the SDK banner and first-run setup are suppressed."""
    log.debug("$ %s  (cwd=%s)", " ".join(cmd), cwd)
    env = {**os.environ, **_DOTNET_ENV}
    try:
        return subprocess.run(cmd, cwd=cwd, env=env, capture_output=True, text=True, timeout=timeout)
    except subprocess.TimeoutExpired:
        raise RuntimeError(f"{' '.join(cmd[:3])} timed out after {timeout}s") from None


def execute(
    project_file: Path,
    targets: list[str] | None = None,
    properties: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    restore: bool = False,
) -> BuildResult:
    """Run msbuild on *project_file*; an empty *targets* runs the default target."""
    settings = settings or Settings()
    project_file = Path(project_file)
    cmd = [
        settings.dotnet, "msbuild", str(project_file),
        "-nologo", "-v:n", "-tl:off", "-nodeReuse:false",
    ]
    if restore:
        cmd.append("-restore")
    if targets:
        cmd.append("-t:" + ";".join(targets))
    cmd += _property_args(properties)

    proc = _run(cmd, cwd=project_file.parent, timeout=settings.build_timeout)
    result = BuildResult(command=cmd, returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)
    log.info(
        "msbuild %s [%s] -> exit %d (%d errors, %d warnings)",
        project_file.name, ";".join(targets or ["default"]), result.returncode,
        len(result.errors), len(result.warnings),
    )
    return result


def restore(project_file: Path, properties: Mapping[str, str] | None = None,
            settings: Settings | None = None) -> BuildResult:
    return execute(project_file, ["Restore"], properties, settings)


def build(
    project_file: Path,
    target: str = "Build",
    properties: Mapping[str, str] | None = None,
    settings: Settings | None = None,
) -> BuildResult:
    """Restore, then build *target*.

    Restore runs as its own invocation so its evaluations of the project do
    not show up as double builds in the returned log.
    """
    restored = restore(project_file, properties, settings)
    if not restored.succeeded:
        return restored
    return execute(project_file, [target], properties, settings)


def rebuild(project_file: Path, project_name: str | None = None,
            properties: Mapping[str, str] | None = None,
            settings: Settings | None = None) -> BuildResult:
    """Rebuild a project, or one project of a solution by name."""
    target = f"{project_name.replace('.', '_')}:Rebuild" if project_name else "Rebuild"
    restored = restore(project_file, properties, settings)
    if not restored.succeeded:
        return restored
    return execute(project_file, [target], properties, settings)


def _check_evaluation(proc: subprocess.CompletedProcess, project_file: Path) -> None:
    if proc.returncode != 0:
        errors = parse_diagnostics(proc.stdout.splitlines() + proc.stderr.splitlines())
        detail = errors[0].message if errors else (proc.stderr or proc.stdout).strip()[:500]
        raise RuntimeError(f"Evaluating {project_file.name} failed: {detail}")


def evaluate_properties(
    project_file: Path,
    names: list[str],
    properties: Mapping[str, str] | None = None,
    settings: Settings | None = None,
) -> dict[str, str]:
    """Evaluate *names* on *project_file* without running any target."""
    if not names:
        return {}
    settings = settings or Settings()
    project_file = Path(project_file)
    cmd = [settings.dotnet, "msbuild", str(project_file), "-nologo"]
    cmd += [f"-getProperty:{name}" for name in names]
    cmd += _property_args(properties)

    proc = _run(cmd, cwd=project_file.parent, timeout=settings.build_timeout)
    _check_evaluation(proc, project_file)
    return parse_property_output(proc.stdout, names)


def evaluate_target_outputs(
    project_file: Path,
    targets: list[str],
    properties: Mapping[str, str] | None = None,
    settings: Settings | None = None,
) -> dict[str, list[str]]:
    """Run *targets* and return the full paths of the items each one outputs.

    Output groups such as BuiltProjectOutputGroup only exist as target
    results, so they cannot be read with -getProperty. The project must
    already be restored.
    """
    if not targets:
        return {}
    settings = settings or Settings()
    project_file = Path(project_file)
    cmd = [settings.dotnet, "msbuild", str(project_file), "-nologo", "-t:" + ";".join(targets)]
    cmd += [f"-getTargetResult:{target}" for target in targets]
    cmd += _property_args(properties)

    proc = _run(cmd, cwd=project_file.parent, timeout=settings.build_timeout)
    _check_evaluation(proc, project_file)
    return parse_target_results(proc.stdout, targets)


def _decode_json(stdout: str) -> dict:
    # First-run banners and other chatter can surround the document.
    lines = stdout.splitlines()
    for i, line in enumerate(lines):
        if line.lstrip().startswith("{"):
            text = "\n".join(lines[i:])
            return orjson.loads(text[:text.rfind("}") + 1])
    raise RuntimeError(f"msbuild printed no JSON document: {stdout.strip()[:500]!r}")


def parse_property_output(stdout: str, names: list[str]) -> dict[str, str]:
    """Decode -getProperty output.

    msbuild prints a bare value for a single property and a JSON document
    ({"Properties": {...}}) for several.
    """
    if len(names) == 1:
        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        return {names[0]: lines[-1] if lines else ""}
    props = _decode_json(stdout).get("Properties", {})
    return {name: props.get(name, "") for name in names}


def parse_target_results(stdout: str, targets: list[str]) -> dict[str, list[str]]:
    """Decode -getTargetResult output into item paths per target.

    {"TargetResults": {"<target>": {"Result": "Success", "Items": [{"Identity": ..., "FullPath": ...}]}}}
    """
    results = _decode_json(stdout).get("TargetResults", {})
    out: dict[str, list[str]] = {}
    for target in targets:
        entry = results.get(target) or {}
        if entry.get("Result", "Success") != "Success":
            raise RuntimeError(f"Target {target} did not succeed: {entry.get('Result')}")
        out[target] = [
            item.get("FullPath") or item.get("Identity", "")
            for item in entry.get("Items", [])
        ]
    return out
