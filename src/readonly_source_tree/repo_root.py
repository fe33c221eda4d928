"""
Repository root discovery.

Given a project directory, finds the repository root whose ``src``, ``bin``
and ``obj`` children hold sources and build outputs:

  1. Explicit override: the nearest ancestor named ``src`` contains the empty
     ``.RepoSrcRoot`` file, so its parent is the root.
  2. Heuristic: the first directory, walking up, holding any of an ordered
     list of root markers (.git, *.sln, LICENSE, ...). A project folder
     directly below src/, and src/ itself, are skipped.
  3. Otherwise resolution fails with RepoRootNotFound.

Only existence checks touch the filesystem.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from .paths import (
    BIN_DIR_NAME,
    DEFAULT_ROOT_MARKERS,
    OBJ_DIR_NAME,
    SRC_DIR_NAME,
    SRC_ROOT_MARKER,
)

log = logging.getLogger("readonly-source-tree.repo_root")

_GLOB_CHARS = frozenset("*?[")


class RepoRootNotFound(RuntimeError):
    """No override marker and no root marker above the start directory."""

    def __init__(self, start_directory: Path, markers: Sequence[str]) -> None:
        self.start_directory = start_directory
        self.markers = tuple(markers)
        super().__init__(
            f"Unable to find the repository root above {start_directory}: "
            f"no {SRC_DIR_NAME}/{SRC_ROOT_MARKER} file and none of "
            f"[{', '.join(self.markers)}] in any parent directory"
        )


@dataclass(frozen=True)
class RepositoryLayout:
    root: Path
    src_root: Path
    bin_root: Path
    obj_root: Path

    @staticmethod
    def from_root(root: Path) -> RepositoryLayout:
        return RepositoryLayout(
            root=root,
            src_root=root / SRC_DIR_NAME,
            bin_root=root / BIN_DIR_NAME,
            obj_root=root / OBJ_DIR_NAME,
        )


# ---------------------------------------------------------------------------
# Marker lookup
# ---------------------------------------------------------------------------


def _has_marker(directory: Path, marker: str) -> bool:
    if _GLOB_CHARS.intersection(marker):
        return next(directory.glob(marker), None) is not None
    return (directory / marker).exists()


def find_src_root_override(start: Path, marker: str = SRC_ROOT_MARKER) -> Path | None:
    """Return the nearest ``src`` ancestor of *start* if it holds *marker*.

    *start* itself counts, so running from inside ``src`` works too.
    """
    for candidate in (start, *start.parents):
        if candidate.name == SRC_DIR_NAME:
            if (candidate / marker).is_file():
                return candidate
            return None
    return None


def _first_candidate(start: Path) -> Path:
    # A project folder under src/, or src/ itself, is never the root.
    if start.parent.name == SRC_DIR_NAME:
        return start.parent.parent
    if start.name == SRC_DIR_NAME:
        return start.parent
    return start


def find_marked_ancestor(start: Path, markers: Sequence[str]) -> Path | None:
    """Walk up from *start*; return the first directory with a marker.

    *start* counts unless it is a project folder directly below ``src`` (or
    ``src`` itself); then the walk begins at the directory holding ``src``.
    """
    first = _first_candidate(start)
    for candidate in (first, *first.parents):
        for marker in markers:
            if _has_marker(candidate, marker):
                log.debug("Found root marker %r in %s", marker, candidate)
                return candidate
    return None


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve(
    start_directory: Path | str,
    markers: Sequence[str] = DEFAULT_ROOT_MARKERS,
    src_root_marker: str = SRC_ROOT_MARKER,
) -> RepositoryLayout:
    """Resolve the repository layout for a project directory.

    Raises RepoRootNotFound when neither the override nor any marker applies.
    """
    start = Path(start_directory).resolve()

    src_root = find_src_root_override(start, src_root_marker)
    if src_root is not None:
        log.debug("Explicit %s found in %s", src_root_marker, src_root)
        return RepositoryLayout.from_root(src_root.parent)

    root = find_marked_ancestor(start, markers)
    if root is None:
        raise RepoRootNotFound(start, markers)

    return RepositoryLayout.from_root(root)
