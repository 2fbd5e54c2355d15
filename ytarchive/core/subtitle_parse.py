"""
Cue-level parsing of VTT / SRT / ASS subtitle files.

Used to check that a format conversion kept every cue, in order.
"""

import re
import logging
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Matches both VTT (00:01.000, 00:00:01.000) and SRT (00:00:01,000) timings
_TIMING_RE = re.compile(
    r'^\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{3})\s*-->\s*((?:\d+:)?\d{1,2}:\d{2}[.,]\d{3})',
)
_HTML_TAG_RE = re.compile(r'<[^>]+>')

# ASS/SSA event line; fields after the colon are
# Layer (Marked= in SSA), Start, End, Style, Name, MarginL, MarginR, MarginV, Effect, Text
_ASS_DIALOGUE_RE = re.compile(r'^\s*Dialogue:\s*(.*)$')
_ASS_FIELD_COUNT = 10
_ASS_OVERRIDE_RE = re.compile(r'\{[^}]*\}')
_ASS_EXTENSIONS = ('.ass', '.ssa')


@dataclass
class Cue:
    start: float
    end: float
    text: str


def parse_timestamp(value: str) -> float:
    """'01:02:03.456' / '02:03,456' -> seconds."""
    parts = value.replace(',', '.').split(':')
    seconds = float(parts[-1])
    minutes = int(parts[-2])
    hours = int(parts[-3]) if len(parts) == 3 else 0
    return hours * 3600 + minutes * 60 + seconds


def _parse_ass_cues(content: str) -> list[Cue]:
    """
    Parse the Dialogue events of an ASS/SSA script. Override blocks like
    {\\i1} are dropped and \\N / \\n become line breaks. Events are returned
    sorted by start time, the order ffmpeg writes them in.
    """
    cues = []
    for line in content.split('\n'):
        m = _ASS_DIALOGUE_RE.match(line)
        if not m:
            continue
        fields = m.group(1).split(',', _ASS_FIELD_COUNT - 1)
        if len(fields) < _ASS_FIELD_COUNT:
            logger.debug("Skipping malformed ASS event: %s", line)
            continue
        try:
            start = parse_timestamp(fields[1].strip())
            end = parse_timestamp(fields[2].strip())
        except (ValueError, IndexError):
            logger.debug("Skipping ASS event with bad timing: %s", line)
            continue
        text = _ASS_OVERRIDE_RE.sub('', fields[9])
        text = text.replace('\\N', '\n').replace('\\n', '\n').replace('\\h', ' ')
        cues.append(Cue(start=start, end=end, text=text.strip()))
    cues.sort(key=lambda c: c.start)
    return cues


def parse_cues(subtitle_path: Path) -> list[Cue]:
    """
    Parse all timed cues from a VTT, SRT, ASS or SSA file.
    Header blocks, NOTE/STYLE blocks and cue identifiers are ignored.
    """
    content = subtitle_path.read_text(encoding='utf-8-sig', errors='replace')
    content = content.replace('\r\n', '\n').replace('\r', '\n')

    if subtitle_path.suffix.lower() in _ASS_EXTENSIONS:
        return _parse_ass_cues(content)

    cues = []
    for block in re.split(r'\n\s*\n', content):
        lines = block.strip('\n').split('\n')
        for i, line in enumerate(lines):
            m = _TIMING_RE.match(line)
            if m:
                text = '\n'.join(l.strip() for l in lines[i + 1:]).strip()
                cues.append(Cue(
                    start=parse_timestamp(m.group(1)),
                    end=parse_timestamp(m.group(2)),
                    text=_HTML_TAG_RE.sub('', text),
                ))
                break
    return cues


def non_empty_cues(cues: list[Cue]) -> list[Cue]:
    return [c for c in cues if c.text.strip()]


def cues_match(source: list[Cue], converted: list[Cue], tolerance: float = 0.01) -> bool:
    """
    True when both lists hold the same number of non-empty cues with the
    same start times in the same order.
    """
    a = non_empty_cues(source)
    b = non_empty_cues(converted)
    if len(a) != len(b):
        logger.debug("Cue count differs: %d vs %d", len(a), len(b))
        return False
    for x, y in zip(a, b):
        if abs(x.start - y.start) > tolerance:
            logger.debug("Cue timing differs: %.3f vs %.3f", x.start, y.start)
            return False
    return True
