"""
Metadata extraction from yt-dlp's .info.json document, and the
ffmetadata chapters file built from it.
"""

import json
import logging
from pathlib import Path

from ytarchive.core.models import Chapter, MetadataRecord
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import ErrorCode

logger = logging.getLogger(__name__)

_REQUIRED_FIELDS = ('title', 'uploader', 'webpage_url')

FFMETADATA_HEADER = ";FFMETADATA1"


def parse_info_json(info_path: Path) -> MetadataRecord:
    """
    Parse an .info.json document into a MetadataRecord.
    Raises JobError(ERR_METADATA_INVALID) on unreadable JSON or a missing
    required field. A missing or empty chapters list is not an error.
    """
    try:
        with open(info_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except OSError as e:
        raise JobError(ErrorCode.METADATA_INVALID, f"Cannot read {info_path}: {e}")
    except json.JSONDecodeError as e:
        raise JobError(ErrorCode.METADATA_INVALID, f"Failed to parse {info_path}: {e}")

    if not isinstance(data, dict):
        raise JobError(ErrorCode.METADATA_INVALID,
                       f"{info_path} does not contain a JSON object")

    for key in _REQUIRED_FIELDS:
        value = data.get(key)
        if not isinstance(value, str):
            raise JobError(ErrorCode.METADATA_INVALID,
                           f"{info_path.name}: missing or invalid '{key}'")

    description = data.get('description') or ""
    if not isinstance(description, str):
        raise JobError(ErrorCode.METADATA_INVALID,
                       f"{info_path.name}: invalid 'description'")

    return MetadataRecord(
        title=data['title'],
        uploader=data['uploader'],
        description=description,
        webpage_url=data['webpage_url'],
        chapters=_parse_chapters(data.get('chapters'), info_path),
    )


def _parse_chapters(raw, info_path: Path) -> list[Chapter]:
    if not raw:
        return []
    if not isinstance(raw, list):
        raise JobError(ErrorCode.METADATA_INVALID,
                       f"{info_path.name}: 'chapters' is not a list")

    chapters = []
    for i, entry in enumerate(raw, 1):
        if not isinstance(entry, dict):
            raise JobError(ErrorCode.METADATA_INVALID,
                           f"{info_path.name}: chapter {i} is not an object")
        start = entry.get('start_time')
        end = entry.get('end_time')
        # bool is an int subclass; reject it explicitly
        for name, value in (('start_time', start), ('end_time', end)):
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise JobError(ErrorCode.METADATA_INVALID,
                               f"{info_path.name}: chapter {i} has no numeric {name}")
        title = entry.get('title')
        if not isinstance(title, str):
            title = f"Chapter {i}"
        chapters.append(Chapter(start_time=start, end_time=end, title=title))
    return chapters


def escape_ffmetadata(value: str) -> str:
    """Escape the characters ffmetadata treats specially."""
    return (value
            .replace('\\', '\\\\')
            .replace('=', '\\=')
            .replace(';', '\\;')
            .replace('#', '\\#')
            .replace('\n', '\\\n'))


def render_chapters(record: MetadataRecord) -> str:
    """
    Render an ffmetadata document: global tags then one [CHAPTER] block per
    chapter. Start/end values are written exactly as they came in.
    """
    lines = [
        FFMETADATA_HEADER,
        f"title={escape_ffmetadata(record.title)}",
        f"author={escape_ffmetadata(record.uploader)}",
        f"description={escape_ffmetadata(record.description)}",
        f"comment={escape_ffmetadata(record.webpage_url)}",
    ]
    for ch in record.chapters:
        lines.extend([
            "[CHAPTER]",
            "TIMEBASE=1/1",
            f"START={ch.start_time}",
            f"END={ch.end_time}",
            f"TITLE={escape_ffmetadata(ch.title)}",
        ])
    return '\n'.join(lines) + '\n'


def write_chapters_file(record: MetadataRecord, output_path: Path) -> Path | None:
    """
    Write the chapters artifact. Returns its path, or None (writing nothing)
    when the video has no chapters.
    """
    if not record.chapters:
        return None

    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_chapters(record), encoding='utf-8')
    logger.debug("Wrote %d chapters to %s", len(record.chapters), output_path)
    return output_path
