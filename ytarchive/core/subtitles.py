"""
Thumbnail and subtitle conversion, plus the mux arguments for subtitles.

Conversion target: PNG thumbnail, SubRip subtitles.
"""

import logging
from pathlib import Path

from ytarchive.core.models import SubtitleTrack, VideoJob
from ytarchive.core.subtitle_parse import parse_cues, cues_match
from ytarchive.core.security_utils import run_subprocess_capture, stderr_tail
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, FFMPEG, TARGET_THUMBNAIL_EXT, TARGET_SUBTITLE_EXT,
    TARGET_SUBTITLE_CODEC, FIRST_SUBTITLE_INPUT_INDEX,
)

logger = logging.getLogger(__name__)


class Converter:
    """Format conversion capability used before muxing."""

    def convert_thumbnail(self, src: Path, dst: Path) -> Path:
        raise NotImplementedError

    def convert_subtitle(self, src: Path, dst: Path) -> Path:
        raise NotImplementedError


class FfmpegConverter(Converter):

    def __init__(self, ffmpeg: str = FFMPEG):
        self.ffmpeg = ffmpeg

    def _run(self, args: list[str], code: str, what: str, dst: Path) -> Path:
        try:
            result = run_subprocess_capture(args)
        except OSError as e:
            raise JobError(code, f"Could not start ffmpeg for {what}: {e}")

        if result.returncode != 0:
            raise JobError(code,
                           f"ffmpeg failed to convert {what} (rc={result.returncode}): "
                           f"{stderr_tail(result)}")
        if not dst.exists():
            raise JobError(code, f"ffmpeg produced no output for {what}")
        return dst

    def convert_thumbnail(self, src: Path, dst: Path) -> Path:
        args = [
            self.ffmpeg, "-hide_banner", "-loglevel", "error", "-y",
            "-i", str(src),
            "-frames:v", "1",
            str(dst),
        ]
        return self._run(args, ErrorCode.THUMBNAIL_CONVERT, f"the thumbnail {src.name}", dst)

    def convert_subtitle(self, src: Path, dst: Path) -> Path:
        args = [
            self.ffmpeg, "-hide_banner", "-loglevel", "error", "-y",
            "-i", str(src),
            str(dst),
        ]
        return self._run(args, ErrorCode.SUBTITLE_CONVERT, f"the subtitles {src.name}", dst)


def prepare_thumbnail(job: VideoJob, converter: Converter, work_dir: Path) -> Path:
    """Replace job.thumbnail_path with a PNG, converting unless it already is one."""
    if job.thumbnail_path.suffix.lower() == TARGET_THUMBNAIL_EXT:
        return job.thumbnail_path

    work_dir.mkdir(parents=True, exist_ok=True)
    dst = work_dir / f"{job.basename}{TARGET_THUMBNAIL_EXT}"
    job.thumbnail_path = converter.convert_thumbnail(job.thumbnail_path, dst)
    logger.debug("Thumbnail converted: %s", job.thumbnail_path)
    return job.thumbnail_path


def converted_subtitle_path(track: SubtitleTrack, work_dir: Path, position: int) -> Path:
    # position keeps names unique if two tracks share a language code
    stem = track.source_path.name[:-len(track.source_path.suffix)]
    return work_dir / f"{position:02d}.{stem}{TARGET_SUBTITLE_EXT}"


def convert_subtitles(job: VideoJob, converter: Converter, work_dir: Path) -> list[SubtitleTrack]:
    """
    Convert every track of the job, in order. The first failure is fatal for
    the job. Each converted file must keep the source's cues and timing order.
    """
    if not job.subtitles:
        return job.subtitles

    work_dir.mkdir(parents=True, exist_ok=True)
    for position, track in enumerate(job.subtitles):
        dst = converted_subtitle_path(track, work_dir, position)
        converter.convert_subtitle(track.source_path, dst)

        try:
            source_cues = parse_cues(track.source_path)
            converted_cues = parse_cues(dst)
        except OSError as e:
            raise JobError(ErrorCode.SUBTITLE_CONVERT,
                           f"Cannot read subtitles for cue check ({track.source_path.name}): {e}")
        if not cues_match(source_cues, converted_cues):
            raise JobError(ErrorCode.SUBTITLE_CONVERT,
                           f"Converted subtitles {dst.name} lost or reordered cues "
                           f"({len(source_cues)} -> {len(converted_cues)})")

        track.converted_path = dst
        logger.info("Converted subtitles [%s]: %s", track.lang or "und", track.source_path.name)
    return job.subtitles


def build_subtitle_args(tracks: list[SubtitleTrack],
                        first_index: int = FIRST_SUBTITLE_INPUT_INDEX) -> tuple[list[str], list[str], int]:
    """
    Build ffmpeg inputs and mappings for converted subtitle tracks.

    Input index i maps to output subtitle stream i - first_index, so
    -map, -c:s:N and -metadata:s:s:N always agree.
    Returns (inputs, mappings, next_free_input_index).
    """
    inputs: list[str] = []
    mappings: list[str] = []
    index = first_index

    for track in tracks:
        path = track.converted_path or track.source_path
        stream = index - first_index
        inputs.extend(["-i", str(path)])
        mappings.extend([
            "-map", str(index),
            f"-c:s:{stream}", TARGET_SUBTITLE_CODEC,
            f"-metadata:s:s:{stream}", f"language={track.lang}",
        ])
        index += 1

    return inputs, mappings, index
