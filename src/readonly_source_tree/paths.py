"""Centralized names for the repository layout.

Every directory and marker name the resolver, the path computer and the
generated MSBuild fragments agree on lives here.
"""

from __future__ import annotations

#: Directory holding project sources, directly under the repository root.
SRC_DIR_NAME = "src"

#: Final build outputs, directly under the repository root.
BIN_DIR_NAME = "bin"

#: Intermediate build outputs, directly under the repository root.
OBJ_DIR_NAME = "obj"

#: Empty file inside ``src/`` that pins the repository root explicitly.
SRC_ROOT_MARKER = ".RepoSrcRoot"

#: Ordered root markers checked while walking up from a project directory.
#: Plain names match files or directories; names with wildcards are globs.
DEFAULT_ROOT_MARKERS: tuple[str, ...] = (
    ".git",
    ".hg",
    ".svn",
    "*.sln",
    ".gitignore",
    ".gitattributes",
    "global.json",
    "LICENSE",
    "LICENSE.txt",
    "LICENSE.md",
    "README.md",
    "README.txt",
    "README",
)

#: Configuration used when neither the build nor the environment names one.
DEFAULT_CONFIGURATION = "Debug"

#: Platform values that mean "no platform segment".
DEFAULT_PLATFORMS = frozenset({"AnyCPU", "Any CPU"})

#: Extension of the XML documentation file emitted next to the target.
DOCUMENTATION_EXTENSION = ".xml"

#: Extension assumed when the build does not report a target file name.
DEFAULT_TARGET_EXTENSION = ".dll"

#: Generated MSBuild fragments, written into the repository's ``src/``.
PROPS_FILE_NAME = "Directory.Build.props"
TARGETS_FILE_NAME = "Directory.Build.targets"
