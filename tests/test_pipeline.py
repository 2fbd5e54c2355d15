#!/usr/bin/env python3
"""
Pipeline and CLI tests for ytarchive.
Every external tool is replaced by a fake: no yt-dlp, no ffmpeg, no network.
"""

import io
import sys
import json
import tempfile
from pathlib import Path
from unittest import mock

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import unittest

from ytarchive.core.constants import ErrorCode, JobStatus, FailurePolicy, YT_DLP, FFMPEG
from ytarchive.core.models import FetchOptions
from ytarchive.core.error_codes import JobError
from ytarchive.core.downloader import Downloader
from ytarchive.core.subtitles import Converter
from ytarchive.core.muxer import Muxer, build_mux_args
from ytarchive.core.subtitle_parse import parse_cues
from ytarchive.core.tool_locate import LocatedTool
from ytarchive.core.pipeline import ArchivePipeline, RunContext
from ytarchive.cli.cli_main import main

from test_core import make_video_dir, write_info_json


def _srt_time(t: float) -> str:
    ms = int(round(t * 1000))
    h, ms = divmod(ms, 3600 * 1000)
    m, ms = divmod(ms, 60 * 1000)
    s, ms = divmod(ms, 1000)
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


class FakeDownloader(Downloader):
    """Builds a fetch tree instead of running yt-dlp."""

    def __init__(self, populate):
        self.populate = populate
        self.calls = []

    def fetch(self, url, options, dest_root):
        self.calls.append((url, options, dest_root))
        dest_root.mkdir(parents=True, exist_ok=True)
        self.populate(dest_root)
        return dest_root


class FakeConverter(Converter):
    """Writes a PNG placeholder and a cue-for-cue SRT rendering."""

    def __init__(self):
        self.thumbnails = []
        self.subtitles = []

    def convert_thumbnail(self, src, dst):
        self.thumbnails.append(src)
        dst.write_bytes(b"png")
        return dst

    def convert_subtitle(self, src, dst):
        self.subtitles.append(src)
        blocks = []
        for i, cue in enumerate(parse_cues(src), 1):
            blocks.append(f"{i}\n{_srt_time(cue.start)} --> {_srt_time(cue.end)}\n{cue.text}\n")
        dst.write_text("\n".join(blocks), encoding="utf-8")
        return dst


class RecordingMuxer(Muxer):
    """Records the ffmpeg command it would run and writes a stand-in file."""

    def __init__(self):
        self.calls = []

    def mux(self, job, destination, overwrite=False):
        args = build_mux_args("ffmpeg", job, destination, overwrite)
        self.calls.append((job, destination, args))
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_bytes(b"archive")
        return destination


class FailingMuxer(Muxer):

    def __init__(self):
        self.calls = 0

    def mux(self, job, destination, overwrite=False):
        self.calls += 1
        raise JobError(ErrorCode.MUX_FAILED, "ffmpeg failed")


def metadata_value(args, key):
    """Value of the -metadata KEY=VALUE pair given for KEY, or None."""
    for i, a in enumerate(args[:-1]):
        if a == "-metadata" and args[i + 1].startswith(f"{key}="):
            return args[i + 1].split("=", 1)[1]
    return None


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.base = Path(self.tmp.name)
        self.output_root = self.base / "out"
        self.temp_root = self.base / "tmp"
        self.temp_root.mkdir()
        self.converter = FakeConverter()
        self.muxer = RecordingMuxer()

    def tearDown(self):
        self.tmp.cleanup()

    def run_pipeline(self, populate, muxer=None, on_failure=FailurePolicy.ABORT,
                     overwrite=False, keep_temp=False, options=None):
        self.downloader = FakeDownloader(populate)
        pipeline = ArchivePipeline(self.downloader, self.converter, muxer or self.muxer,
                                   on_failure=on_failure, overwrite=overwrite)
        self.ctx = RunContext(self.output_root, keep_temp=keep_temp, temp_root=self.temp_root)
        with self.ctx:
            return pipeline.run(self.ctx, "https://www.youtube.com/watch?v=abc123def45", options)

    def destination(self, uploader="U", basename="T [abc123def45]") -> Path:
        return self.output_root / uploader / f"{basename}.mkv"


class TestEndToEnd(PipelineTestCase):
    """Full runs against fake collaborators."""

    def test_single_video_without_subtitles(self):
        summary = self.run_pipeline(lambda root: make_video_dir(root))

        self.assertTrue(summary.ok)
        self.assertEqual(summary.count(JobStatus.COMPLETED), 1)
        self.assertTrue(self.destination().exists())
        self.assertEqual(summary.results[0].output_path, self.destination())

        job, destination, args = self.muxer.calls[0]
        joined = " ".join(args)
        self.assertEqual(args.count("-i"), 2)
        self.assertIn("-map 0:v -map 0:a", joined)
        self.assertNotIn("-map 1", joined)
        self.assertIn("-c:v copy -c:a copy", joined)
        self.assertEqual(args[args.index("-attach") + 1], str(job.thumbnail_path))
        self.assertIn("-metadata:s:t title=Thumbnail", joined)
        self.assertNotIn("-map 2", joined)
        self.assertNotIn("language=", joined)
        self.assertEqual(metadata_value(args, "title"), "T")
        self.assertEqual(metadata_value(args, "author"), "U")
        self.assertEqual(job.thumbnail_path.suffix, ".png")
        self.assertEqual(len(self.converter.thumbnails), 1)

    def test_two_subtitle_tracks(self):
        summary = self.run_pipeline(lambda root: make_video_dir(root, langs=("en", "fr")))

        self.assertTrue(summary.ok)
        job, _, args = self.muxer.calls[0]
        joined = " ".join(args)
        self.assertEqual(args.count("-i"), 4)
        self.assertIn("-map 2 -c:s:0 srt -metadata:s:s:0 language=en", joined)
        self.assertIn("-map 3 -c:s:1 srt -metadata:s:s:1 language=fr", joined)
        self.assertNotIn("-c:s:2", joined)
        for track in job.subtitles:
            self.assertEqual(track.converted_path.suffix, ".srt")
        self.assertEqual(len(self.converter.subtitles), 2)

    def test_chapters_feed_global_metadata(self):
        def populate(root):
            video_dir = make_video_dir(root, langs=("en",))
            write_info_json(video_dir / "T [abc123def45].info.json", chapters=[
                {"start_time": 0, "end_time": 10, "title": "One"},
                {"start_time": 10, "end_time": 20, "title": "Two"},
            ])

        self.run_pipeline(populate)
        job, _, args = self.muxer.calls[0]
        self.assertIsNotNone(job.chapters_path)
        self.assertEqual(job.chapters_path.name, "T [abc123def45]_chapters.txt")
        self.assertEqual(args[args.index("-map_metadata") + 1], "3")
        self.assertEqual(args[args.index("-map_chapters") + 1], "3")
        self.assertIsNone(metadata_value(args, "title"))

    def test_no_chapters_no_chapters_input(self):
        self.run_pipeline(lambda root: make_video_dir(root))
        job, _, args = self.muxer.calls[0]
        self.assertIsNone(job.chapters_path)
        self.assertNotIn("ffmetadata", args)
        self.assertNotIn("-map_metadata", args)

    def test_png_thumbnail_not_reconverted(self):
        self.run_pipeline(lambda root: make_video_dir(root, thumbnail=".png"))
        self.assertEqual(self.converter.thumbnails, [])

    def test_fetch_options_forwarded(self):
        options = FetchOptions(cookies_from_browser="firefox", user_agent="UA")
        self.run_pipeline(lambda root: make_video_dir(root), options=options)
        url, passed, dest_root = self.downloader.calls[0]
        self.assertEqual(passed, options)
        self.assertEqual(dest_root, self.ctx.fetch_dir)


class TestFailures(PipelineTestCase):
    """Fatal errors, failure policy and cleanup."""

    def test_missing_container_writes_nothing(self):
        with self.assertRaises(JobError) as ctx:
            self.run_pipeline(lambda root: make_video_dir(root, container=False))
        self.assertEqual(ctx.exception.code, ErrorCode.MISSING_ARTIFACT)
        self.assertEqual(self.muxer.calls, [])
        self.assertFalse(self.output_root.exists())

    def test_nothing_downloaded(self):
        with self.assertRaises(JobError) as ctx:
            self.run_pipeline(lambda root: None)
        self.assertEqual(ctx.exception.code, ErrorCode.NO_VIDEOS_FOUND)

    def _one_bad_one_good(self, root):
        bad = make_video_dir(root, uploader="A", video_id="aaaaaaaaaaa")
        write_info_json(bad / "T [aaaaaaaaaaa].info.json", title=None)
        make_video_dir(root, uploader="B", video_id="bbbbbbbbbbb")

    def test_abort_policy_stops_at_first_failure(self):
        with self.assertRaises(JobError) as ctx:
            self.run_pipeline(self._one_bad_one_good)
        self.assertEqual(ctx.exception.code, ErrorCode.METADATA_INVALID)
        self.assertEqual(self.muxer.calls, [])

    def test_continue_policy_reports_summary(self):
        summary = self.run_pipeline(self._one_bad_one_good, on_failure=FailurePolicy.CONTINUE)
        self.assertFalse(summary.ok)
        self.assertEqual(len(summary.results), 2)
        self.assertEqual(summary.results[0].status, JobStatus.FAILED)
        self.assertEqual(summary.results[0].error_code, ErrorCode.METADATA_INVALID)
        self.assertEqual(summary.results[1].status, JobStatus.COMPLETED)
        self.assertEqual(len(self.muxer.calls), 1)

    def test_mux_failure_fatal(self):
        muxer = FailingMuxer()
        with self.assertRaises(JobError) as ctx:
            self.run_pipeline(lambda root: make_video_dir(root), muxer=muxer)
        self.assertEqual(ctx.exception.code, ErrorCode.MUX_FAILED)
        self.assertEqual(muxer.calls, 1)

    def test_existing_archive_skipped(self):
        self.destination().parent.mkdir(parents=True)
        self.destination().write_bytes(b"old")
        summary = self.run_pipeline(lambda root: make_video_dir(root))
        self.assertTrue(summary.ok)
        self.assertEqual(summary.results[0].status, JobStatus.SKIPPED)
        self.assertEqual(self.muxer.calls, [])
        self.assertEqual(self.destination().read_bytes(), b"old")

    def test_existing_archive_overwritten(self):
        self.destination().parent.mkdir(parents=True)
        self.destination().write_bytes(b"old")
        self.run_pipeline(lambda root: make_video_dir(root), overwrite=True)
        _, _, args = self.muxer.calls[0]
        self.assertIn("-y", args)
        self.assertEqual(self.destination().read_bytes(), b"archive")


class TestRunContext(PipelineTestCase):
    """The temporary workspace is removed on every exit path."""

    def test_removed_after_success(self):
        self.run_pipeline(lambda root: make_video_dir(root))
        self.assertFalse(self.ctx.workspace.exists())

    def test_removed_after_failure(self):
        with self.assertRaises(JobError):
            self.run_pipeline(lambda root: make_video_dir(root), muxer=FailingMuxer())
        self.assertFalse(self.ctx.workspace.exists())

    def test_removed_after_interrupt(self):
        def populate(root):
            raise KeyboardInterrupt

        with self.assertRaises(KeyboardInterrupt):
            self.run_pipeline(populate)
        self.assertFalse(self.ctx.workspace.exists())

    def test_keep_temp(self):
        self.run_pipeline(lambda root: make_video_dir(root), keep_temp=True)
        self.assertTrue(self.ctx.workspace.exists())


class TestCLI(unittest.TestCase):
    """Exit codes and pre-flight ordering of the command line."""

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.base = Path(self.tmp.name)
        self.tools_dir = self.base / "tools"
        self.tools_dir.mkdir()
        self.config = self.base / "config.json"
        self.config.write_text(json.dumps({
            "tools_dir": str(self.tools_dir),
            "fallback_warning_delay": 0,
        }))
        patcher = mock.patch("ytarchive.cli.cli_main.setup_logging")
        patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self.tmp.cleanup()

    def test_missing_url_exits_1(self):
        with mock.patch("sys.stderr", new_callable=io.StringIO):
            with self.assertRaises(SystemExit) as ctx:
                main(["--config", str(self.config)])
        self.assertEqual(ctx.exception.code, 1)

    @mock.patch("ytarchive.core.downloader.run_subprocess")
    @mock.patch("ytarchive.core.pipeline.tempfile.mkdtemp")
    @mock.patch("ytarchive.core.tool_locate.shutil.which", return_value=None)
    def test_missing_tool_exits_before_workspace(self, mock_which, mock_mkdtemp, mock_run):
        rc = main(["https://www.youtube.com/watch?v=abc123def45", "--config", str(self.config)])
        self.assertEqual(rc, 1)
        mock_mkdtemp.assert_not_called()
        mock_run.assert_not_called()

    def _patch_tools(self):
        tools = {
            YT_DLP: LocatedTool(YT_DLP, "/usr/bin/yt-dlp", colocated=False),
            FFMPEG: LocatedTool(FFMPEG, "/usr/bin/ffmpeg", colocated=False),
        }
        patcher = mock.patch("ytarchive.cli.cli_main.locate_required_tools", return_value=tools)
        patcher.start()
        self.addCleanup(patcher.stop)

    @mock.patch("ytarchive.core.pipeline.tempfile.mkdtemp")
    def test_invalid_url_exits_1(self, mock_mkdtemp):
        self._patch_tools()
        rc = main(["not a url", "--config", str(self.config)])
        self.assertEqual(rc, 1)
        mock_mkdtemp.assert_not_called()

    def test_archive_with_fakes(self):
        self._patch_tools()
        output_root = self.base / "archive"
        muxer = RecordingMuxer()
        with mock.patch("ytarchive.cli.cli_main.YtDlpDownloader",
                        lambda path: FakeDownloader(lambda root: make_video_dir(root))), \
                mock.patch("ytarchive.cli.cli_main.FfmpegConverter", lambda path: FakeConverter()), \
                mock.patch("ytarchive.cli.cli_main.FfmpegMuxer", lambda path: muxer), \
                mock.patch("sys.stdout", new_callable=io.StringIO) as stdout:
            rc = main(["https://www.youtube.com/watch?v=abc123def45", str(output_root),
                       "--config", str(self.config)])

        self.assertEqual(rc, 0)
        self.assertTrue((output_root / "U" / "T [abc123def45].mkv").exists())
        self.assertIn("All videos have been processed", stdout.getvalue())

    def test_download_failure_exits_1(self):
        self._patch_tools()

        class BrokenDownloader(Downloader):
            def fetch(self, url, options, dest_root):
                raise JobError(ErrorCode.DOWNLOAD_FAILED, "yt-dlp failed")

        with mock.patch("ytarchive.cli.cli_main.YtDlpDownloader", lambda path: BrokenDownloader()):
            rc = main(["https://www.youtube.com/watch?v=abc123def45", str(self.base / "archive"),
                       "--config", str(self.config)])
        self.assertEqual(rc, 1)
        self.assertFalse((self.base / "archive").exists())


if __name__ == "__main__":
    unittest.main()
