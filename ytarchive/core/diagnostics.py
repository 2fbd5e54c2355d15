"""
Diagnostics: tool version detection and system checks.
"""

import shutil
import logging
from pathlib import Path

from ytarchive.core.security_utils import run_subprocess_capture
from ytarchive.core.tool_locate import find_colocated
from ytarchive.core.constants import YT_DLP, FFMPEG

logger = logging.getLogger(__name__)


def _tool_path(name: str, search_dir: Path) -> str:
    local = find_colocated(name, search_dir)
    if local is not None:
        return str(local)
    return shutil.which(name) or name


def get_ytdlp_version(yt_dlp: str = YT_DLP) -> str:
    """Return yt-dlp version string, or error message."""
    try:
        result = run_subprocess_capture([yt_dlp, "--version"], timeout=10)
        if result.returncode == 0:
            return result.stdout.strip()
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def get_ffmpeg_version(ffmpeg: str = FFMPEG) -> str:
    """Return ffmpeg version string, or error message."""
    try:
        result = run_subprocess_capture([ffmpeg, "-version"], timeout=10)
        if result.returncode == 0:
            lines = result.stdout.strip().splitlines()
            return lines[0] if lines else "Unknown"
        return f"Error (rc={result.returncode})"
    except FileNotFoundError:
        return "Not installed"
    except Exception as e:
        return f"Error: {e}"


def get_diagnostics(search_dir: Path, config_path: Path, output_root: Path) -> dict:
    """Gather all diagnostic information."""
    yt_dlp = _tool_path(YT_DLP, search_dir)
    ffmpeg = _tool_path(FFMPEG, search_dir)
    return {
        "ytdlp_path": yt_dlp,
        "ytdlp_version": get_ytdlp_version(yt_dlp),
        "ffmpeg_path": ffmpeg,
        "ffmpeg_version": get_ffmpeg_version(ffmpeg),
        "config_path": str(config_path),
        "config_exists": config_path.exists(),
        "output_root": str(output_root),
    }
