"""
Final mux: container + thumbnail + subtitles + chapters/metadata -> one mkv.

Input order is fixed: container (0), thumbnail (1), subtitles (2..),
chapters document last. The thumbnail input only holds its slot; the cover
itself is written as a Matroska attachment.
"""

import logging
from pathlib import Path

from ytarchive.core.models import VideoJob
from ytarchive.core.subtitles import build_subtitle_args
from ytarchive.core.security_utils import run_subprocess_capture, stderr_tail
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, FFMPEG, TARGET_SUBTITLE_CODEC, CONTAINER_INPUT_INDEX,
    THUMBNAIL_STREAM_TITLE, THUMBNAIL_MIMETYPE, THUMBNAIL_ATTACHMENT_NAME,
)

logger = logging.getLogger(__name__)


def build_mux_args(ffmpeg: str, job: VideoJob, destination: Path,
                   overwrite: bool = False) -> list[str]:
    """
    Assemble the ffmpeg command for one job. Video/audio are copied as-is,
    the thumbnail becomes a cover attachment, subtitles are re-encoded to SRT.
    """
    if job.metadata is None:
        raise ValueError(f"Job {job.label} has no parsed metadata")

    sub_inputs, sub_mappings, chapters_index = build_subtitle_args(job.subtitles)

    args = [ffmpeg, "-hide_banner", "-loglevel", "error"]
    args.append("-y" if overwrite else "-n")
    args.extend(["-i", str(job.container_path)])
    args.extend(["-i", str(job.thumbnail_path)])
    args.extend(sub_inputs)
    if job.chapters_path:
        args.extend(["-f", "ffmetadata", "-i", str(job.chapters_path)])

    args.extend([
        "-map", f"{CONTAINER_INPUT_INDEX}:v",
        "-map", f"{CONTAINER_INPUT_INDEX}:a",
    ])
    args.extend(sub_mappings)
    args.extend([
        "-c:v", "copy",
        "-c:a", "copy",
        "-c:s", TARGET_SUBTITLE_CODEC,
        "-attach", str(job.thumbnail_path),
        "-metadata:s:t", f"mimetype={THUMBNAIL_MIMETYPE}",
        "-metadata:s:t", f"filename={THUMBNAIL_ATTACHMENT_NAME}",
        "-metadata:s:t", f"title={THUMBNAIL_STREAM_TITLE}",
    ])

    if job.chapters_path:
        # Global tags and chapters both come from the ffmetadata document
        args.extend([
            "-map_metadata", str(chapters_index),
            "-map_chapters", str(chapters_index),
        ])
    else:
        meta = job.metadata
        args.extend([
            "-metadata", f"title={meta.title}",
            "-metadata", f"author={meta.uploader}",
            "-metadata", f"description={meta.description}",
            "-metadata", f"comment={meta.webpage_url}",
        ])

    args.append(str(destination))
    return args


class Muxer:
    """Mux capability: produce the archival file for a prepared job."""

    def mux(self, job: VideoJob, destination: Path, overwrite: bool = False) -> Path:
        raise NotImplementedError


class FfmpegMuxer(Muxer):

    def __init__(self, ffmpeg: str = FFMPEG):
        self.ffmpeg = ffmpeg

    def mux(self, job: VideoJob, destination: Path, overwrite: bool = False) -> Path:
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise JobError(ErrorCode.OUTPUT_DIR,
                           f"Failed to create {destination.parent}: {e}")

        existed = destination.exists()
        args = build_mux_args(self.ffmpeg, job, destination, overwrite)
        logger.info("Muxing %s", job.label)

        try:
            result = run_subprocess_capture(args)
        except OSError as e:
            raise JobError(ErrorCode.MUX_FAILED, f"Could not start ffmpeg: {e}")

        if result.returncode != 0:
            # Don't leave a truncated archive behind
            if overwrite or not existed:
                destination.unlink(missing_ok=True)
            raise JobError(ErrorCode.MUX_FAILED,
                           f"ffmpeg failed to create the final video for {job.label} "
                           f"(rc={result.returncode}): {stderr_tail(result)}")
        return destination
