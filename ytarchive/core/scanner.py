"""
Artifact scanner: turn the fetch stage's directory tree into VideoJobs.

Layout: <root>/<uploader>/<video_id>/<title> [<id>].<artifact>
Every file in a video directory is classified by name, then the job is
assembled from the classified set.
"""

import re
import logging
from pathlib import Path

from ytarchive.core.models import ClassifiedFile, SubtitleTrack, VideoJob
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, ArtifactKind,
    CONTAINER_EXTENSIONS, THUMBNAIL_EXTENSIONS, SUBTITLE_EXTENSIONS,
    METADATA_SUFFIX,
)

logger = logging.getLogger(__name__)

_LANG_RE = re.compile(r'[\w-]+')


def subtitle_language(filename: str) -> str:
    """
    Language code = the dotted component right before the extension.
    'Title [id].en.vtt' -> 'en', 'x.pt-BR.vtt' -> 'pt-BR', 'x.vtt' -> ''.
    """
    parts = filename.split('.')
    if len(parts) < 3 or not _LANG_RE.fullmatch(parts[-2]):
        return ""
    return parts[-2]


def classify_file(path: Path) -> ClassifiedFile:
    name = path.name
    lower = name.lower()

    if lower.endswith(METADATA_SUFFIX):
        return ClassifiedFile(ArtifactKind.METADATA, path, name[:-len(METADATA_SUFFIX)])

    suffix = path.suffix.lower()
    if suffix in CONTAINER_EXTENSIONS:
        return ClassifiedFile(ArtifactKind.CONTAINER, path, path.stem)
    if suffix in THUMBNAIL_EXTENSIONS:
        return ClassifiedFile(ArtifactKind.THUMBNAIL, path, path.stem)
    if suffix in SUBTITLE_EXTENSIONS:
        lang = subtitle_language(name)
        basename = path.stem[:-(len(lang) + 1)] if lang else path.stem
        return ClassifiedFile(ArtifactKind.SUBTITLE, path, basename, lang=lang)

    return ClassifiedFile(ArtifactKind.OTHER, path, path.stem)


def classify_dir(video_dir: Path) -> list[ClassifiedFile]:
    return [classify_file(p) for p in sorted(video_dir.iterdir()) if p.is_file()]


def _pick_thumbnail(candidates: list[ClassifiedFile]) -> ClassifiedFile | None:
    # Deterministic preference when yt-dlp left several formats behind
    for ext in THUMBNAIL_EXTENSIONS:
        for c in candidates:
            if c.path.suffix.lower() == ext:
                return c
    return None


def assemble_jobs(files: list[ClassifiedFile], uploader: str, video_id: str,
                  video_dir: Path) -> list[VideoJob]:
    """
    Build one VideoJob per container file, pairing the metadata document and
    thumbnail by basename. All subtitle files in the directory belong to it.
    """
    containers = [f for f in files if f.kind == ArtifactKind.CONTAINER]
    if not containers:
        raise JobError(ErrorCode.MISSING_ARTIFACT,
                       f"No video container found in {video_dir}")

    subtitles = [
        SubtitleTrack(lang=f.lang or "", source_path=f.path)
        for f in files if f.kind == ArtifactKind.SUBTITLE
    ]

    jobs = []
    for container in containers:
        base = container.basename
        metadata = [f for f in files
                    if f.kind == ArtifactKind.METADATA and f.basename == base]
        if not metadata:
            raise JobError(ErrorCode.MISSING_ARTIFACT,
                           f"No metadata document ({base}{METADATA_SUFFIX}) in {video_dir}")

        thumbnail = _pick_thumbnail(
            [f for f in files if f.kind == ArtifactKind.THUMBNAIL and f.basename == base])
        if thumbnail is None:
            raise JobError(ErrorCode.MISSING_ARTIFACT,
                           f"No thumbnail for '{base}' in {video_dir}")

        jobs.append(VideoJob(
            uploader=uploader,
            video_id=video_id,
            basename=base,
            container_path=container.path,
            thumbnail_path=thumbnail.path,
            info_json_path=metadata[0].path,
            subtitles=[SubtitleTrack(t.lang, t.source_path) for t in subtitles],
        ))
    return jobs


def scan_video_dir(video_dir: Path, uploader: str) -> list[VideoJob]:
    return assemble_jobs(classify_dir(video_dir), uploader, video_dir.name, video_dir)


def scan_fetch_root(root: Path) -> list[VideoJob]:
    """
    Walk <root>/<uploader>/<video_id>/ and return every job found.
    Raises JobError if nothing was produced or any video directory is
    incomplete.
    """
    video_dirs = []
    if root.is_dir():
        for uploader_dir in sorted(root.iterdir()):
            if not uploader_dir.is_dir():
                continue
            for video_dir in sorted(uploader_dir.iterdir()):
                if video_dir.is_dir():
                    video_dirs.append((uploader_dir.name, video_dir))

    if not video_dirs:
        raise JobError(ErrorCode.NO_VIDEOS_FOUND, f"No videos found to process in {root}.")

    jobs = []
    for uploader, video_dir in video_dirs:
        found = scan_video_dir(video_dir, uploader)
        logger.debug("Scanned %s: %d job(s)", video_dir, len(found))
        jobs.extend(found)

    logger.info("Found %d video(s) to archive", len(jobs))
    return jobs
