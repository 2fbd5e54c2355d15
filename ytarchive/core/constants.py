"""
Shared constants for ytarchive.
Single source of truth — imported by every other module.
"""

import sys
import pathlib

# ── Application identity ──────────────────────────────────────────────
APP_NAME = "ytarchive"
APP_DISPLAY_NAME = "YouTube Archiver"
APP_VERSION = "1.0.0"

# ── Filesystem paths ─────────────────────────────────────────────────
HOME = pathlib.Path.home()

DEFAULT_OUTPUT_ROOT = HOME / "Videos" / "Youtube Videos"

if sys.platform == "darwin":
    APP_CONFIG_DIR = HOME / "Library" / "Application Support" / APP_NAME
    APP_CACHE_DIR = HOME / "Library" / "Caches" / APP_NAME
else:
    APP_CONFIG_DIR = HOME / ".config" / APP_NAME
    APP_CACHE_DIR = HOME / ".cache" / APP_NAME

CONFIG_PATH = APP_CONFIG_DIR / "config.json"
LOG_DIR = APP_CACHE_DIR / "logs"
LOG_FILE = LOG_DIR / "ytarchive.log"

TEMP_DIR_PREFIX = "yt_archive."

# ── External tools ────────────────────────────────────────────────────
YT_DLP = "yt-dlp"
FFMPEG = "ffmpeg"

# Seconds to pause after the "system yt-dlp" warning
FALLBACK_WARNING_DELAY_SEC = 3

YT_DLP_RELEASE_URL = "https://github.com/yt-dlp/yt-dlp/releases/latest/download/{asset}"
YT_DLP_DOWNLOAD_TIMEOUT_SEC = 60

# ── Fetch stage ───────────────────────────────────────────────────────
FETCH_FORMAT = "bestvideo+bestaudio/best"
MERGE_FORMAT = "mkv"
FETCH_OUTPUT_TEMPLATE = "%(uploader)s/%(id)s/%(title)s [%(id)s].%(ext)s"

# ── Artifact classification ───────────────────────────────────────────
CONTAINER_EXTENSIONS = (".mkv",)
THUMBNAIL_EXTENSIONS = (".webp", ".jpg", ".jpeg", ".png")
SUBTITLE_EXTENSIONS = (".vtt", ".srt", ".ass", ".ssa")
METADATA_SUFFIX = ".info.json"

TARGET_THUMBNAIL_EXT = ".png"
TARGET_SUBTITLE_EXT = ".srt"
TARGET_SUBTITLE_CODEC = "srt"
CHAPTERS_SUFFIX = "_chapters.txt"

# ── Mux layout ────────────────────────────────────────────────────────
# Input 0 = container, input 1 = thumbnail, subtitles follow.
# Matroska keeps the cover as a file attachment, not as a video stream.
CONTAINER_INPUT_INDEX = 0
FIRST_SUBTITLE_INPUT_INDEX = 2
THUMBNAIL_STREAM_TITLE = "Thumbnail"
THUMBNAIL_MIMETYPE = "image/png"
THUMBNAIL_ATTACHMENT_NAME = "cover.png"


class ArtifactKind:
    CONTAINER = "CONTAINER"
    THUMBNAIL = "THUMBNAIL"
    SUBTITLE = "SUBTITLE"
    METADATA = "METADATA"
    OTHER = "OTHER"


# ── Job stage values (ordered) ────────────────────────────────────────
class JobStage:
    LOCATING_TOOLS = "LOCATING_TOOLS"
    VALIDATING_ARGS = "VALIDATING_ARGS"
    FETCHING = "FETCHING"
    SCANNING = "SCANNING"
    EXTRACTING_METADATA = "EXTRACTING_METADATA"
    CONVERTING_THUMBNAIL = "CONVERTING_THUMBNAIL"
    CONVERTING_SUBTITLES = "CONVERTING_SUBTITLES"
    MUXING = "MUXING"


# ── Job outcome values ────────────────────────────────────────────────
class JobStatus:
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    SKIPPED = "SKIPPED"


# ── Failure policy ────────────────────────────────────────────────────
class FailurePolicy:
    ABORT = "abort"
    CONTINUE = "continue"

    ALL = (ABORT, CONTINUE)


# ── Error codes ───────────────────────────────────────────────────────
class ErrorCode:
    # Run-scoped (abort the whole run)
    TOOL_MISSING = "ERR_TOOL_MISSING"
    INVALID_ARGUMENT = "ERR_INVALID_ARGUMENT"
    CONFIG = "ERR_CONFIG"
    WORKSPACE = "ERR_WORKSPACE"
    DOWNLOAD_FAILED = "ERR_DOWNLOAD_FAILED"
    NO_VIDEOS_FOUND = "ERR_NO_VIDEOS_FOUND"
    MISSING_ARTIFACT = "ERR_MISSING_ARTIFACT"
    TOOL_INSTALL = "ERR_TOOL_INSTALL"

    # Job-scoped
    METADATA_INVALID = "ERR_METADATA_INVALID"
    THUMBNAIL_CONVERT = "ERR_THUMBNAIL_CONVERT"
    SUBTITLE_CONVERT = "ERR_SUBTITLE_CONVERT"
    OUTPUT_DIR = "ERR_OUTPUT_DIR"
    MUX_FAILED = "ERR_MUX_FAILED"

JOB_SCOPED_ERRORS = {
    ErrorCode.METADATA_INVALID,
    ErrorCode.THUMBNAIL_CONVERT,
    ErrorCode.SUBTITLE_CONVERT,
    ErrorCode.OUTPUT_DIR,
    ErrorCode.MUX_FAILED,
}

# Human-readable stage names for error messages
ERROR_STAGES = {
    ErrorCode.TOOL_MISSING: "tool check",
    ErrorCode.INVALID_ARGUMENT: "argument check",
    ErrorCode.CONFIG: "configuration",
    ErrorCode.WORKSPACE: "temporary workspace",
    ErrorCode.DOWNLOAD_FAILED: "download",
    ErrorCode.NO_VIDEOS_FOUND: "artifact scan",
    ErrorCode.MISSING_ARTIFACT: "artifact scan",
    ErrorCode.TOOL_INSTALL: "yt-dlp install",
    ErrorCode.METADATA_INVALID: "metadata extraction",
    ErrorCode.THUMBNAIL_CONVERT: "thumbnail conversion",
    ErrorCode.SUBTITLE_CONVERT: "subtitle conversion",
    ErrorCode.OUTPUT_DIR: "output directory",
    ErrorCode.MUX_FAILED: "mux",
}

# ── Misc ──────────────────────────────────────────────────────────────
# Characters forbidden in file/folder names
UNSAFE_FILENAME_CHARS = r'[<>:"/\\|?*\x00-\x1f]'
MAX_FILENAME_LEN = 200
STDERR_TAIL_CHARS = 300
