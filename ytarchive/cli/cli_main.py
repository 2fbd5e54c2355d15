"""
Command-line interface for ytarchive.

    ytarchive URL [OUTPUT_DIR] [options]

Exit status is 0 when every video was archived (or skipped because its
archive already exists) and 1 on any fatal error.
"""

import os
import sys
import signal
import logging
import argparse
import traceback
from pathlib import Path
from datetime import datetime

from ytarchive.core.constants import (
    APP_NAME, APP_DISPLAY_NAME, APP_VERSION, LOG_DIR, LOG_FILE, CONFIG_PATH,
    YT_DLP, FFMPEG, JobStatus, FailurePolicy,
)
from ytarchive.core.config import AppConfig
from ytarchive.core.models import FetchOptions, RunSummary
from ytarchive.core.error_codes import JobError
from ytarchive.core.url_parse import validate_source_url
from ytarchive.core.tool_locate import locate_required_tools, script_dir
from ytarchive.core.tool_install import install_yt_dlp
from ytarchive.core.diagnostics import get_diagnostics
from ytarchive.core.downloader import YtDlpDownloader
from ytarchive.core.subtitles import FfmpegConverter
from ytarchive.core.muxer import FfmpegMuxer
from ytarchive.core.pipeline import ArchivePipeline, RunContext

logger = logging.getLogger(APP_NAME)


class ArchiveArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on usage errors; every fatal error here exits 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    parser = ArchiveArgumentParser(
        prog=APP_NAME,
        description="Download a video with yt-dlp and archive it, with thumbnail, "
                    "subtitles, chapters and metadata, into a single mkv.",
    )
    parser.add_argument("url", nargs="?", help="video, playlist or channel URL")
    parser.add_argument("output_dir", nargs="?",
                        help="archive root (default: from config, else ~/Videos/Youtube Videos)")
    parser.add_argument("--cookies-from-browser", metavar="BROWSER",
                        help="passed through to yt-dlp, e.g. firefox or chrome:Profile 1")
    parser.add_argument("--cookies", metavar="FILE", help="Netscape cookies file for yt-dlp")
    parser.add_argument("--user-agent", metavar="UA", help="custom user-agent for yt-dlp")
    parser.add_argument("--on-failure", choices=FailurePolicy.ALL,
                        help="abort the run on the first failed video, or continue and report")
    parser.add_argument("--overwrite", action="store_true", default=None,
                        help="replace archives that already exist")
    parser.add_argument("--keep-temp", action="store_true", default=None,
                        help="leave the temporary download directory in place")
    parser.add_argument("--config", metavar="PATH", type=Path,
                        help=f"config file (default: {CONFIG_PATH})")
    parser.add_argument("-v", "--verbose", action="store_true", help="debug logging")
    parser.add_argument("--diagnostics", action="store_true",
                        help="show tool paths and versions, then exit")
    parser.add_argument("--install-yt-dlp", action="store_true",
                        help="download the latest yt-dlp next to ytarchive, then exit")
    parser.add_argument("--version", action="version", version=f"%(prog)s {APP_VERSION}")
    return parser


def setup_logging(verbose: bool = False):
    """Console messages on stderr, full detail in the log file."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(logging.DEBUG if verbose else logging.INFO)
    console.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(console)

    try:
        LOG_DIR.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(LOG_FILE, encoding="utf-8")
    except OSError as e:
        logger.warning("Cannot write log file %s: %s", LOG_FILE, e)
        return
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(
        logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))
    root.addHandler(file_handler)


def _raise_on_sigterm(signum, frame):
    # SystemExit unwinds through RunContext, which removes the workspace
    raise SystemExit(1)


def _tools_dir(config: AppConfig) -> Path:
    return config.tools_dir or script_dir()


def show_diagnostics(config: AppConfig) -> int:
    info = get_diagnostics(_tools_dir(config), config.path, config.output_root)
    print(f"{APP_DISPLAY_NAME} {APP_VERSION}")
    print(f"  {YT_DLP}:       {info['ytdlp_version']} ({info['ytdlp_path']})")
    print(f"  {FFMPEG}:       {info['ffmpeg_version']} ({info['ffmpeg_path']})")
    print(f"  config:       {info['config_path']}"
          f"{'' if info['config_exists'] else ' (not created)'}")
    print(f"  output root:  {info['output_root']}")
    return 0


def report(summary: RunSummary, output_root: Path) -> int:
    total = len(summary.results)
    done = summary.count(JobStatus.COMPLETED)
    skipped = summary.count(JobStatus.SKIPPED)

    for result in summary.failed:
        print(f"FAILED {result.job.label}: {result.error_message}", file=sys.stderr)

    if summary.ok:
        print(f"All videos have been processed and saved in {output_root}.")
        if skipped:
            print(f"({skipped} already archived, skipped)")
        return 0

    print(f"{done} of {total} videos archived; {len(summary.failed)} failed.", file=sys.stderr)
    return 1


def archive(args, config: AppConfig) -> int:
    # Pre-flight: tools first, before any temp directory or network use
    tools = locate_required_tools(_tools_dir(config), config.fallback_warning_delay)
    url = validate_source_url(args.url)

    options = FetchOptions(
        cookies_from_browser=config.get('cookies_from_browser'),
        cookies_path=config.cookies_path,
        user_agent=config.get('user_agent'),
    )
    pipeline = ArchivePipeline(
        downloader=YtDlpDownloader(tools[YT_DLP].path),
        converter=FfmpegConverter(tools[FFMPEG].path),
        muxer=FfmpegMuxer(tools[FFMPEG].path),
        on_failure=config.on_failure,
        overwrite=config.overwrite,
    )

    with RunContext(config.output_root, keep_temp=config.keep_temp) as ctx:
        summary = pipeline.run(ctx, url, options)
    return report(summary, config.output_root)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)
    logger.debug("%s %s starting at %s", APP_NAME, APP_VERSION, datetime.now().isoformat())
    logger.debug("Python: %s", sys.executable)
    logger.debug("PATH: %s", os.environ.get("PATH", ""))

    config = AppConfig(args.config)
    config.override(
        output_root=args.output_dir,
        cookies_from_browser=args.cookies_from_browser,
        cookies_path=args.cookies,
        user_agent=args.user_agent,
        on_failure=args.on_failure,
        overwrite=args.overwrite,
        keep_temp=args.keep_temp,
    )

    try:
        if args.install_yt_dlp:
            path = install_yt_dlp(_tools_dir(config))
            print(f"Installed {YT_DLP} at {path}")
            return 0
        if args.diagnostics:
            return show_diagnostics(config)
        if not args.url:
            parser.error(f"Usage: {APP_NAME} <video_url> [output_directory]")

        signal.signal(signal.SIGTERM, _raise_on_sigterm)
        return archive(args, config)

    except JobError as e:
        logger.error("Error: %s", e.describe())
        return 1
    except KeyboardInterrupt:
        logger.error("Error: interrupted")
        return 1
    except Exception as e:
        logger.critical("Error: %s: %s", type(e).__name__, e)
        logger.debug(traceback.format_exc())
        return 1


def run():
    sys.exit(main())


if __name__ == "__main__":
    run()
