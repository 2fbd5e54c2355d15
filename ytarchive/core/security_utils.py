"""
Security utilities for ytarchive.
- Filename sanitization
- Destination path containment
- Safe subprocess execution (argument arrays only)
"""

import re
import subprocess
import pathlib
import logging

from ytarchive.core.constants import (
    UNSAFE_FILENAME_CHARS, MAX_FILENAME_LEN, STDERR_TAIL_CHARS,
)

logger = logging.getLogger(__name__)


# ── Filename / path safety ────────────────────────────────────────────

def sanitize_name(name: str) -> str:
    """Sanitize an uploader name or file basename for use as a path component."""
    if not name:
        return ""
    safe = re.sub(UNSAFE_FILENAME_CHARS, '_', name)
    safe = re.sub(r'\s+', ' ', safe).strip()
    if len(safe) > MAX_FILENAME_LEN:
        safe = safe[:MAX_FILENAME_LEN].rstrip()
    # Separators are gone already; leading dots would hide the file and a
    # bare ".." would climb a level
    safe = safe.strip('.')
    return safe


def safe_destination(output_root: pathlib.Path, uploader: str, basename: str,
                     ext: str = ".mkv") -> pathlib.Path:
    """
    Build <output_root>/<uploader>/<basename><ext>.  Enforces that the
    resolved result stays inside the resolved output root.
    """
    folder = sanitize_name(uploader) or "unknown uploader"
    stem = sanitize_name(basename) or "video"

    candidate = output_root / folder / f"{stem}{ext}"
    real_root = output_root.resolve(strict=False)
    real_candidate = candidate.resolve(strict=False)
    if real_root not in real_candidate.parents:
        raise ValueError(f"Destination escapes output root: {candidate}")
    return candidate


# ── Subprocess safety ─────────────────────────────────────────────────

def run_subprocess(args: list[str], **kwargs) -> subprocess.CompletedProcess:
    """
    Execute a subprocess using argument arrays only.
    shell=True is explicitly forbidden; stdin is closed so no tool can
    stop and prompt.
    """
    if not isinstance(args, (list, tuple)):
        raise TypeError("Subprocess args must be a list/tuple, not a string")

    kwargs.pop('shell', None)
    kwargs.setdefault('stdin', subprocess.DEVNULL)

    logger.debug("Running subprocess: %s", ' '.join(str(a) for a in args))
    return subprocess.run([str(a) for a in args], shell=False, **kwargs)


def run_subprocess_capture(args: list[str], timeout: int | None = None,
                           **kwargs) -> subprocess.CompletedProcess:
    """Run subprocess and capture stdout/stderr."""
    return run_subprocess(
        args,
        capture_output=True,
        text=True,
        timeout=timeout,
        **kwargs,
    )


def stderr_tail(result: subprocess.CompletedProcess, limit: int = STDERR_TAIL_CHARS) -> str:
    """Last `limit` characters of a captured stderr, for error messages."""
    stderr = (result.stderr or "").strip()
    if len(stderr) > limit:
        return "..." + stderr[-limit:]
    return stderr
