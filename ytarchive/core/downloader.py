"""
Fetch stage: one yt-dlp invocation for the whole run.

Produces <dest_root>/<uploader>/<id>/<title> [<id>].* — merged mkv,
thumbnail, every subtitle language and the .info.json document.
"""

import logging
from pathlib import Path

from ytarchive.core.models import FetchOptions
from ytarchive.core.security_utils import run_subprocess
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, YT_DLP, FETCH_FORMAT, MERGE_FORMAT, FETCH_OUTPUT_TEMPLATE,
)

logger = logging.getLogger(__name__)


def build_fetch_args(yt_dlp: str, url: str, dest_root: Path,
                     options: FetchOptions | None = None) -> list[str]:
    """Assemble the fixed yt-dlp command line, plus any optional forwards."""
    options = options or FetchOptions()
    args = [
        yt_dlp,
        "--format", FETCH_FORMAT,
        "--merge-output-format", MERGE_FORMAT,
        "--write-thumbnail",
        "--write-sub",
        "--sub-langs", "all",
        "--write-info-json",
        "--compat-options", "filename-sanitization",
        "--output", str(dest_root / FETCH_OUTPUT_TEMPLATE),
    ]

    if options.cookies_from_browser:
        args.extend(["--cookies-from-browser", options.cookies_from_browser])
    if options.cookies_path:
        args.extend(["--cookies", str(options.cookies_path)])
    if options.user_agent:
        args.extend(["--user-agent", options.user_agent])

    args.append(url)
    return args


class Downloader:
    """Fetch capability: download everything behind a URL into dest_root."""

    def fetch(self, url: str, options: FetchOptions, dest_root: Path) -> Path:
        raise NotImplementedError


class YtDlpDownloader(Downloader):

    def __init__(self, yt_dlp: str = YT_DLP):
        self.yt_dlp = yt_dlp

    def fetch(self, url: str, options: FetchOptions, dest_root: Path) -> Path:
        """
        Run yt-dlp once. Output is not captured so download progress stays
        visible. Any non-zero exit aborts the run.
        """
        dest_root.mkdir(parents=True, exist_ok=True)
        if options.cookies_path and not options.cookies_path.exists():
            raise JobError(ErrorCode.INVALID_ARGUMENT,
                           f"Cookies file not found: {options.cookies_path}")

        args = build_fetch_args(self.yt_dlp, url, dest_root, options)
        logger.info("Downloading %s", url)

        try:
            result = run_subprocess(args)
        except OSError as e:
            raise JobError(ErrorCode.DOWNLOAD_FAILED, f"Could not start yt-dlp: {e}")

        if result.returncode != 0:
            raise JobError(ErrorCode.DOWNLOAD_FAILED,
                           f"yt-dlp failed to download the video (rc={result.returncode}).")

        logger.debug("Fetch finished into %s", dest_root)
        return dest_root
