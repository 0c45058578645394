"""Video transform utilities backed by the ffmpeg/ffprobe command line tools."""

import json
import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from .error_handling import with_error_handling
from .exceptions import TransformError
from .logging_config import get_logger
from .models import FrameCapture, VideoEncoding

PathLike = Union[str, Path]


def build_transcode_command(
    ffmpeg_binary: str, input_path: PathLike, output_path: PathLike, encoding: VideoEncoding
) -> List[str]:
    """ffmpeg arguments for a full re-encode of video and audio."""
    command = [
        ffmpeg_binary,
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        "-i", str(input_path),
        "-c:v", encoding.codec,
        "-b:v", encoding.bitrate,
        "-c:a", encoding.audio_codec,
        "-b:a", encoding.audio_bitrate,
    ]
    if encoding.format in ("mp4", "mov"):
        command.extend(["-movflags", "+faststart"])
    command.append(str(output_path))
    return command


def build_capture_command(
    ffmpeg_binary: str,
    input_path: PathLike,
    output_path: PathLike,
    capture: FrameCapture,
    seek_seconds: float,
) -> List[str]:
    """ffmpeg arguments grabbing one scaled frame at ``seek_seconds``."""
    return [
        ffmpeg_binary,
        "-y",
        "-hide_banner",
        "-loglevel", "error",
        "-ss", f"{seek_seconds:.3f}",
        "-i", str(input_path),
        "-frames:v", "1",
        "-vf", f"scale={capture.width}:{capture.height}",
        "-update", "1",
        str(output_path),
    ]


class FfmpegVideoTransform:
    """File based video transform. Inputs and outputs must live on disk."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        ffprobe_binary: str = "ffprobe",
        timeout: Optional[float] = 600.0,
    ):
        self._ffmpeg = ffmpeg_binary
        self._ffprobe = ffprobe_binary
        self._timeout = timeout
        self._logger = get_logger("video-transform")

    def _run(self, command: List[str]) -> subprocess.CompletedProcess:
        self._logger.debug(f"Running: {' '.join(command)}")
        return subprocess.run(
            command,
            capture_output=True,
            text=True,
            check=True,
            timeout=self._timeout,
        )

    @with_error_handling(TransformError)
    def probe(self, path: PathLike) -> Dict[str, Any]:
        """Container and stream information as reported by ffprobe."""
        result = self._run(
            [
                self._ffprobe,
                "-v", "quiet",
                "-print_format", "json",
                "-show_format",
                "-show_streams",
                str(path),
            ]
        )
        return json.loads(result.stdout or "{}")

    def probe_duration(self, path: PathLike) -> Optional[float]:
        """Container duration in seconds, exactly as ffprobe reports it."""
        info = self.probe(path)
        duration = info.get("format", {}).get("duration")
        if duration in (None, "N/A"):
            return None
        return float(duration)

    @with_error_handling(TransformError)
    def transcode(
        self, input_path: PathLike, output_path: PathLike, encoding: VideoEncoding
    ) -> Dict[str, Any]:
        """
        Re-encode ``input_path`` into ``output_path``.

        Returns:
            Dictionary with the source ``duration_seconds``

        Raises:
            TransformError: If probing or encoding fails
        """
        duration = self.probe_duration(input_path)
        self._run(build_transcode_command(self._ffmpeg, input_path, output_path, encoding))
        if not Path(output_path).stat().st_size:
            raise TransformError(f"ffmpeg produced an empty output for {input_path}")
        return {"duration_seconds": duration}

    @with_error_handling(TransformError)
    def capture_frame(
        self, input_path: PathLike, output_path: PathLike, capture: FrameCapture
    ) -> Dict[str, Any]:
        """
        Save a single frame at ``capture.timestamp_fraction`` of the duration.

        Raises:
            TransformError: If probing or frame extraction fails
        """
        duration = self.probe_duration(input_path) or 0.0
        seek_seconds = duration * capture.timestamp_fraction
        self._run(
            build_capture_command(self._ffmpeg, input_path, output_path, capture, seek_seconds)
        )
        if not Path(output_path).stat().st_size:
            raise TransformError(f"No frame captured at {seek_seconds:.3f}s of {input_path}")
        return {"timestamp_seconds": seek_seconds}
