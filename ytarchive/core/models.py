"""
Data models (plain dataclasses) for ytarchive.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional


@dataclass
class Chapter:
    start_time: float
    end_time: float
    title: str


@dataclass
class MetadataRecord:
    title: str
    uploader: str
    description: str
    webpage_url: str
    chapters: list[Chapter] = field(default_factory=list)


@dataclass
class SubtitleTrack:
    lang: str
    source_path: Path
    converted_path: Optional[Path] = None    # set by the subtitle converter


@dataclass
class ClassifiedFile:
    """One file in a video directory, tagged by what it is."""
    kind: str                                # ArtifactKind
    path: Path
    basename: str                            # filename minus the artifact suffix
    lang: Optional[str] = None               # SUBTITLE only


@dataclass
class VideoJob:
    uploader: str
    video_id: str
    basename: str                            # "<title> [<id>]"
    container_path: Path
    thumbnail_path: Path
    info_json_path: Path
    subtitles: list[SubtitleTrack] = field(default_factory=list)
    chapters_path: Optional[Path] = None
    metadata: Optional[MetadataRecord] = None

    @property
    def title(self) -> str:
        if self.metadata is not None:
            return self.metadata.title
        return self.basename

    @property
    def label(self) -> str:
        return f"{self.uploader}/{self.video_id}"


@dataclass
class FetchOptions:
    cookies_from_browser: Optional[str] = None
    cookies_path: Optional[Path] = None
    user_agent: Optional[str] = None


@dataclass
class JobResult:
    job: VideoJob
    status: str                              # JobStatus
    output_path: Optional[Path] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None


@dataclass
class RunSummary:
    results: list[JobResult] = field(default_factory=list)

    def count(self, status: str) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def failed(self) -> list[JobResult]:
        return [r for r in self.results if r.error_code]

    @property
    def ok(self) -> bool:
        return not self.failed

