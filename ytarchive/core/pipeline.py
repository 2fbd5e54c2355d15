"""
Archive pipeline: fetch once, then process each video one at a time.

    fetch -> scan -> for each job:
        metadata -> chapters -> thumbnail -> subtitles -> mux
"""

import logging
import tempfile
from pathlib import Path
from typing import Optional

from ytarchive.core.models import FetchOptions, JobResult, RunSummary, VideoJob
from ytarchive.core.downloader import Downloader
from ytarchive.core.muxer import Muxer
from ytarchive.core.subtitles import Converter, prepare_thumbnail, convert_subtitles
from ytarchive.core.scanner import scan_fetch_root
from ytarchive.core.yt_metadata import parse_info_json, write_chapters_file
from ytarchive.core.security_utils import safe_destination
from ytarchive.core.cleanup import cleanup_workspace
from ytarchive.core.error_codes import JobError
from ytarchive.core.constants import (
    ErrorCode, JobStage, JobStatus, FailurePolicy, TEMP_DIR_PREFIX,
    CHAPTERS_SUFFIX,
)

logger = logging.getLogger(__name__)


class RunContext:
    """
    Run-scoped state: owns the temporary workspace and guarantees its
    removal on every exit path when used as a context manager.
    """

    def __init__(self, output_root: Path, keep_temp: bool = False,
                 temp_root: Path | None = None):
        self.output_root = output_root
        self.keep_temp = keep_temp
        self.temp_root = temp_root
        self.workspace: Optional[Path] = None

    def __enter__(self) -> "RunContext":
        try:
            self.workspace = Path(tempfile.mkdtemp(
                prefix=TEMP_DIR_PREFIX,
                dir=str(self.temp_root) if self.temp_root else None,
            ))
        except OSError as e:
            raise JobError(ErrorCode.WORKSPACE, f"Failed to create temporary directory: {e}")
        logger.debug("Workspace: %s", self.workspace)
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.workspace is not None:
            cleanup_workspace(self.workspace, keep=self.keep_temp)
        return False

    @property
    def fetch_dir(self) -> Path:
        return self.workspace / "fetch"

    def job_work_dir(self, job: VideoJob) -> Path:
        return self.workspace / "work" / job.uploader / job.video_id


class ArchivePipeline:
    """
    Strings the stages together. Collaborators are injected so the whole
    flow can run against fakes.
    """

    def __init__(self, downloader: Downloader, converter: Converter, muxer: Muxer,
                 on_failure: str = FailurePolicy.ABORT, overwrite: bool = False):
        self.downloader = downloader
        self.converter = converter
        self.muxer = muxer
        self.on_failure = on_failure
        self.overwrite = overwrite

    # ── Run ───────────────────────────────────────────────────────────

    def run(self, ctx: RunContext, url: str, options: FetchOptions | None = None) -> RunSummary:
        """
        Fetch and archive everything behind `url`. Run-scoped errors
        propagate; job-scoped ones either propagate (abort) or are recorded
        in the summary (continue).
        """
        options = options or FetchOptions()

        self._log_stage(JobStage.FETCHING, url)
        fetch_root = self.downloader.fetch(url, options, ctx.fetch_dir)

        self._log_stage(JobStage.SCANNING, str(fetch_root))
        jobs = scan_fetch_root(fetch_root)

        summary = RunSummary()
        for job in jobs:
            try:
                result = self.process_job(ctx, job)
            except JobError as e:
                if not e.job_scoped or self.on_failure == FailurePolicy.ABORT:
                    raise
                logger.error("Failed to archive %s: %s", job.label, e.describe())
                result = JobResult(job, JobStatus.FAILED,
                                   error_code=e.code, error_message=e.message)
            summary.results.append(result)

        return summary

    # ── Job processing ────────────────────────────────────────────────

    def process_job(self, ctx: RunContext, job: VideoJob) -> JobResult:
        """Take one job from raw artifacts to the archival file."""
        work_dir = ctx.job_work_dir(job)

        self._log_stage(JobStage.EXTRACTING_METADATA, job.label)
        job.metadata = parse_info_json(job.info_json_path)
        job.chapters_path = write_chapters_file(
            job.metadata, work_dir / f"{job.basename}{CHAPTERS_SUFFIX}")

        try:
            destination = safe_destination(ctx.output_root, job.uploader, job.basename)
        except ValueError as e:
            raise JobError(ErrorCode.OUTPUT_DIR, str(e))

        if destination.exists() and not self.overwrite:
            logger.warning("Skipping %s: %s already exists (use --overwrite to replace it)",
                           job.label, destination)
            return JobResult(job, JobStatus.SKIPPED, output_path=destination)

        self._log_stage(JobStage.CONVERTING_THUMBNAIL, job.label)
        prepare_thumbnail(job, self.converter, work_dir)

        self._log_stage(JobStage.CONVERTING_SUBTITLES, job.label)
        convert_subtitles(job, self.converter, work_dir / "subtitles")

        self._log_stage(JobStage.MUXING, job.label)
        output_path = self.muxer.mux(job, destination, overwrite=self.overwrite)

        logger.info("Archived video created at %s", output_path)
        return JobResult(job, JobStatus.COMPLETED, output_path=output_path)

    def _log_stage(self, stage: str, subject: str):
        logger.debug("[%s] %s", stage, subject)
