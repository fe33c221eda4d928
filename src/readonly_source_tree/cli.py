"""CLI entry point for the ``rst`` command.

Usage:
    rst resolve [DIR]                       # print the repository layout
    rst paths [DIR] -c Release -p x64       # print output paths for a project
    rst install [DIR]                       # write Directory.Build.props/.targets into src/
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import os
import sys
from pathlib import Path

import orjson

from .installer import install
from .output_paths import evaluate
from .repo_root import RepoRootNotFound, RepositoryLayout, resolve
from .settings import Settings

log = logging.getLogger("readonly-source-tree")


def _setup_logging(verbose: bool, log_file: Path | None) -> None:
    """Console logging, plus a rotating log file when one is requested."""
    level = logging.DEBUG if verbose else logging.INFO

    # Console handler (stderr, so JSON on stdout stays clean)
    handlers: list[logging.Handler] = [logging.StreamHandler()]

    if log_file is not None:
        # Rotating file handler: 5 MB per file, keep 3 backups
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file, maxBytes=5 * 1024 * 1024, backupCount=3, encoding="utf-8",
        ))

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        handlers=handlers,
        force=True,
    )


def _layout_dict(layout: RepositoryLayout) -> dict[str, str]:
    return {
        "RepoRoot": str(layout.root),
        "RepoSrcRoot": str(layout.src_root),
        "RepoBinRoot": str(layout.bin_root),
        "RepoObjRoot": str(layout.obj_root),
    }


def _print_json(data: dict) -> None:
    sys.stdout.write(orjson.dumps(data, option=orjson.OPT_INDENT_2).decode() + "\n")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def _cmd_resolve(args: argparse.Namespace, settings: Settings) -> int:
    layout = resolve(args.directory, markers=settings.root_markers, src_root_marker=settings.src_root_marker)
    _print_json(_layout_dict(layout))
    return 0


def _cmd_paths(args: argparse.Namespace, settings: Settings) -> int:
    properties: dict[str, str] = {}
    if args.configuration:
        properties["Configuration"] = args.configuration
    if args.platform:
        properties["Platform"] = args.platform
    if args.name:
        properties["MSBuildProjectName"] = args.name
    if args.target_file_name:
        properties["TargetFileName"] = args.target_file_name
    if args.doc:
        properties["GenerateDocumentationFile"] = "true"

    layout, paths = evaluate(args.directory, properties, os.environ, settings, sep=args.sep or os.sep)
    _print_json({**_layout_dict(layout), **paths.as_properties()})
    return 0


def _cmd_install(args: argparse.Namespace, settings: Settings) -> int:
    installation = install(args.directory, settings)
    _print_json({
        **_layout_dict(installation.layout),
        "props": str(installation.props_file),
        "targets": str(installation.targets_file),
    })
    return 0


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rst",
        description="Keep bin/ and obj/ out of project source directories.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    parser.add_argument("--log-file", type=Path, default=None, help="Also log to this rotating file")
    parser.add_argument(
        "--marker", action="append", default=None,
        help="Root marker to look for (repeatable; replaces the default list)",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    p_resolve = sub.add_parser("resolve", help="Print the repository layout for a directory")
    p_resolve.add_argument("directory", nargs="?", type=Path, default=Path.cwd())
    p_resolve.set_defaults(func=_cmd_resolve)

    p_paths = sub.add_parser("paths", help="Print output paths for a project directory")
    p_paths.add_argument("directory", nargs="?", type=Path, default=Path.cwd())
    p_paths.add_argument("-c", "--configuration", default=None,
                         help="Build configuration (default: $Configuration or Debug)")
    p_paths.add_argument("-p", "--platform", default=None, help="Target platform, e.g. x64")
    p_paths.add_argument("--name", default=None, help="Project name (default: directory name)")
    p_paths.add_argument("--target-file-name", default=None, help="Output file name (default: <name>.dll)")
    p_paths.add_argument("--doc", action="store_true", help="Project emits an XML documentation file")
    p_paths.add_argument("--sep", choices=["/", "\\"], default=None,
                         help="Directory separator for the emitted paths (default: platform)")
    p_paths.set_defaults(func=_cmd_paths)

    p_install = sub.add_parser("install", help="Write Directory.Build.props/.targets into the repo's src/")
    p_install.add_argument("directory", nargs="?", type=Path, default=Path.cwd())
    p_install.set_defaults(func=_cmd_install)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    _setup_logging(args.verbose, args.log_file)

    settings = Settings.from_env().with_markers(args.marker)
    try:
        return args.func(args, settings)
    except RepoRootNotFound as exc:
        log.error("%s", exc)
        return 2
    except RuntimeError as exc:
        log.error("%s", exc)
        return 1


def run() -> None:
    """Console-script wrapper around main()."""
    sys.exit(main())
