"""Tests for the ffmpeg backed video transform."""

import json
import subprocess
from unittest.mock import patch

import pytest

from media_pipeline.core.exceptions import TransformError
from media_pipeline.core.models import FrameCapture, VideoEncoding
from media_pipeline.core.video_utils import (
    FfmpegVideoTransform,
    build_capture_command,
    build_transcode_command,
)


def _probe_output(duration="12.480000"):
    return json.dumps({"format": {"duration": duration}, "streams": []})


def _fake_run(duration="12.480000", fail_on=None, output_bytes=b"encoded"):
    """subprocess.run replacement: answers ffprobe, writes ffmpeg's output file."""
    calls = []

    def run(command, **kwargs):
        calls.append(command)
        if fail_on and command[0] == fail_on:
            raise subprocess.CalledProcessError(
                1, command, output="", stderr="line one\nline two\nInvalid data found\n"
            )
        if command[0] == "ffprobe":
            return subprocess.CompletedProcess(command, 0, stdout=_probe_output(duration), stderr="")
        with open(command[-1], "wb") as f:
            f.write(output_bytes)
        return subprocess.CompletedProcess(command, 0, stdout="", stderr="")

    return run, calls


class TestCommands:
    """Tests for ffmpeg argument building."""

    def test_transcode_command(self):
        encoding = VideoEncoding(bitrate="500k")
        command = build_transcode_command("ffmpeg", "in.mov", "out.mp4", encoding)

        assert command[0] == "ffmpeg"
        assert command[command.index("-i") + 1] == "in.mov"
        assert command[command.index("-c:v") + 1] == "libx264"
        assert command[command.index("-b:v") + 1] == "500k"
        assert command[command.index("-c:a") + 1] == "aac"
        assert command[command.index("-b:a") + 1] == "128k"
        assert "+faststart" in command
        assert command[-1] == "out.mp4"

    def test_mkv_has_no_faststart(self):
        command = build_transcode_command("ffmpeg", "in", "out.mkv", VideoEncoding(format="mkv"))
        assert "-movflags" not in command

    def test_capture_command(self):
        command = build_capture_command("ffmpeg", "in.mp4", "out.jpg", FrameCapture(), 6.24)

        assert command[command.index("-ss") + 1] == "6.240"
        assert command[command.index("-frames:v") + 1] == "1"
        assert command[command.index("-vf") + 1] == "scale=320:240"
        assert command[-1] == "out.jpg"


class TestFfmpegVideoTransform:
    """Tests for FfmpegVideoTransform with subprocess mocked out."""

    def test_transcode_reports_exact_duration(self, tmp_path):
        source, output = tmp_path / "in.mov", tmp_path / "out.mp4"
        source.write_bytes(b"video")
        run, calls = _fake_run()

        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            info = FfmpegVideoTransform().transcode(source, output, VideoEncoding())

        assert info == {"duration_seconds": 12.48}
        assert output.read_bytes() == b"encoded"
        assert [c[0] for c in calls] == ["ffprobe", "ffmpeg"]

    def test_transcode_without_duration(self, tmp_path):
        run, _ = _fake_run(duration="N/A")
        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            info = FfmpegVideoTransform().transcode(
                tmp_path / "in", tmp_path / "out.mp4", VideoEncoding()
            )
        assert info == {"duration_seconds": None}

    def test_ffmpeg_failure_becomes_transform_error_with_stderr(self, tmp_path):
        run, _ = _fake_run(fail_on="ffmpeg")
        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            with pytest.raises(TransformError, match="Invalid data found"):
                FfmpegVideoTransform().transcode(
                    tmp_path / "in", tmp_path / "out.mp4", VideoEncoding()
                )

    def test_empty_output_is_a_transform_error(self, tmp_path):
        run, _ = _fake_run(output_bytes=b"")
        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            with pytest.raises(TransformError, match="empty output"):
                FfmpegVideoTransform().transcode(
                    tmp_path / "in", tmp_path / "out.mp4", VideoEncoding()
                )

    def test_timeout_becomes_transform_error(self, tmp_path):
        with patch(
            "media_pipeline.core.video_utils.subprocess.run",
            side_effect=subprocess.TimeoutExpired(["ffprobe"], 1),
        ):
            with pytest.raises(TransformError):
                FfmpegVideoTransform(timeout=1).probe(tmp_path / "in")

    def test_missing_binary_becomes_transform_error(self, tmp_path):
        with patch(
            "media_pipeline.core.video_utils.subprocess.run",
            side_effect=FileNotFoundError("ffprobe"),
        ):
            with pytest.raises(TransformError):
                FfmpegVideoTransform().probe(tmp_path / "in")

    def test_capture_frame_seeks_to_fraction(self, tmp_path):
        run, calls = _fake_run(duration="10.0")
        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            info = FfmpegVideoTransform(ffmpeg_binary="ffmpeg").capture_frame(
                tmp_path / "in", tmp_path / "out.jpg", FrameCapture()
            )

        assert info == {"timestamp_seconds": 5.0}
        assert calls[1][calls[1].index("-ss") + 1] == "5.000"

    def test_custom_binaries_are_used(self, tmp_path):
        calls = []

        def run(command, **kwargs):
            calls.append((command, kwargs))
            return subprocess.CompletedProcess(command, 0, stdout="{}", stderr="")

        with patch("media_pipeline.core.video_utils.subprocess.run", side_effect=run):
            assert FfmpegVideoTransform(ffprobe_binary="/opt/ffprobe").probe_duration("x") is None

        command, kwargs = calls[0]
        assert command[0] == "/opt/ffprobe"
        assert kwargs["check"] is True
        assert kwargs["timeout"] == 600.0
