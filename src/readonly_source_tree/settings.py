"""Runtime settings, read from the environment.

Environment variables:
    RST_ROOT_MARKERS      comma-separated root markers (replaces the defaults)
    RST_SRC_ROOT_MARKER   file name of the explicit ``src`` root marker
    RST_DOTNET            dotnet executable used by the build harness
    RST_BUILD_TIMEOUT     seconds before a dotnet invocation is abandoned
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, replace

from .paths import DEFAULT_ROOT_MARKERS, SRC_ROOT_MARKER

log = logging.getLogger("readonly-source-tree.settings")


@dataclass(frozen=True)
class Settings:
    """Knobs shared by the resolver, the installer and the build harness."""

    root_markers: tuple[str, ...] = DEFAULT_ROOT_MARKERS
    src_root_marker: str = SRC_ROOT_MARKER
    dotnet: str = "dotnet"
    build_timeout: int = 600

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if environ is None else environ
        settings = cls()

        markers = _split_markers(env.get("RST_ROOT_MARKERS", ""))
        if markers:
            settings = replace(settings, root_markers=markers)

        src_marker = env.get("RST_SRC_ROOT_MARKER", "").strip()
        if src_marker:
            settings = replace(settings, src_root_marker=src_marker)

        dotnet = env.get("RST_DOTNET", "").strip()
        if dotnet:
            settings = replace(settings, dotnet=dotnet)

        timeout = env.get("RST_BUILD_TIMEOUT", "").strip()
        if timeout:
            try:
                settings = replace(settings, build_timeout=int(timeout))
            except ValueError:
                raise ValueError(f"RST_BUILD_TIMEOUT must be an integer, got {timeout!r}") from None

        log.debug("Settings: %s", settings)
        return settings

    def with_markers(self, markers: list[str] | tuple[str, ...] | None) -> Settings:
        """Return a copy using *markers*, or ``self`` when none are given."""
        if not markers:
            return self
        return replace(self, root_markers=tuple(markers))


def _split_markers(raw: str) -> tuple[str, ...]:
    return tuple(m.strip() for m in raw.split(",") if m.strip())
