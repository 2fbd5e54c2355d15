"""
Tool locator: find yt-dlp and ffmpeg before anything else happens.

A copy placed next to the ytarchive script wins over the one on PATH.
"""

import os
import sys
import time
import shutil
import logging
from dataclasses import dataclass
from pathlib import Path

from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, YT_DLP, FFMPEG, FALLBACK_WARNING_DELAY_SEC,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    install_hint: str
    warn_on_fallback: bool = False
    fallback_warning: str = ""


@dataclass(frozen=True)
class LocatedTool:
    name: str
    path: str
    colocated: bool


YT_DLP_SPEC = ToolSpec(
    name=YT_DLP,
    install_hint=(
        "yt-dlp is required but was not found next to ytarchive or in PATH.\n"
        "Download it from GitHub (or run `ytarchive --install-yt-dlp`), place it\n"
        "in the same directory as ytarchive and ensure the execute bit is set.\n"
        "Using the version from APT is NOT RECOMMENDED."
    ),
    warn_on_fallback=True,
    fallback_warning=(
        "WARNING: Falling back to system-installed yt-dlp.\n"
        "The version of yt-dlp available on APT is ALMOST ALWAYS\n"
        "outdated and will probably cause issues.\n"
        "STRONGLY consider using the latest version of yt-dlp available on GitHub.\n"
        "Place it in the same directory as ytarchive, and ensure the execute bit is set."
    ),
)

FFMPEG_SPEC = ToolSpec(
    name=FFMPEG,
    install_hint=(
        "ffmpeg is required but was not found next to ytarchive or in PATH.\n"
        "Install it with your package manager (e.g. `apt install ffmpeg`, "
        "`brew install ffmpeg`)."
    ),
)


def script_dir() -> Path:
    """Directory holding the running ytarchive script (or frozen executable)."""
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).resolve().parent
    return Path(sys.argv[0]).resolve().parent


def _executable_names(name: str) -> list[str]:
    if os.name == 'nt':
        return [name + ".exe", name]
    return [name]


def find_colocated(name: str, search_dir: Path) -> Path | None:
    for candidate_name in _executable_names(name):
        candidate = search_dir / candidate_name
        if candidate.is_file() and os.access(candidate, os.X_OK):
            return candidate
    return None


def locate_tool(tool: ToolSpec, search_dir: Path | None = None,
                warning_delay: float = FALLBACK_WARNING_DELAY_SEC) -> LocatedTool:
    """
    Resolve one executable: colocated copy first, then PATH.
    Raises JobError(TOOL_MISSING) if neither exists.
    """
    search_dir = search_dir or script_dir()

    local = find_colocated(tool.name, search_dir)
    if local is not None:
        logger.debug("%s found next to script: %s", tool.name, local)
        return LocatedTool(tool.name, str(local), colocated=True)

    on_path = shutil.which(tool.name)
    if on_path:
        if tool.warn_on_fallback:
            logger.warning(tool.fallback_warning)
            if warning_delay > 0:
                time.sleep(warning_delay)
        logger.debug("%s found in PATH: %s", tool.name, on_path)
        return LocatedTool(tool.name, on_path, colocated=False)

    logger.debug("%s not found. PATH = %s", tool.name, os.environ.get("PATH", ""))
    raise JobError(ErrorCode.TOOL_MISSING, tool.install_hint)


def locate_required_tools(search_dir: Path | None = None,
                          warning_delay: float = FALLBACK_WARNING_DELAY_SEC) -> dict[str, LocatedTool]:
    """Resolve yt-dlp and ffmpeg, keyed by tool name."""
    tools = {}
    for tool in (YT_DLP_SPEC, FFMPEG_SPEC):
        tools[tool.name] = locate_tool(tool, search_dir, warning_delay)
        logger.info("%s found at: %s", tool.name, tools[tool.name].path)
    return tools
