"""
FFmpeg/FFprobe wrapper for video and audio inspection.

Runs the ffprobe and ffmpeg binaries as subprocesses. Every failure mode
(missing binary, timeout, non-zero exit, unparsable output) surfaces as
ProbeFailure so callers only need to handle one error type.
"""
from pathlib import Path
from typing import Any, Optional
import json
import logging
import os
import subprocess

from mediastore.exceptions import ProbeFailure

logger = logging.getLogger(__name__)

# Paths to the binaries - use system default or override via environment
FFMPEG_PATH = os.environ.get('FFMPEG_PATH', 'ffmpeg')
FFPROBE_PATH = os.environ.get('FFPROBE_PATH', 'ffprobe')

DEFAULT_TIMEOUT = 30


class MediaProbe:
    """Inspect media files and extract frames via ffprobe/ffmpeg."""

    def __init__(
        self,
        ffmpeg_path: str = FFMPEG_PATH,
        ffprobe_path: str = FFPROBE_PATH,
        timeout: int = DEFAULT_TIMEOUT
    ):
        self.ffmpeg_path = ffmpeg_path
        self.ffprobe_path = ffprobe_path
        self.timeout = timeout

    def _run(self, cmd: list[str], path: Path) -> subprocess.CompletedProcess:
        logger.debug(f"Running {' '.join(cmd)}")
        try:
            proc = subprocess.run(cmd, capture_output=True, text=True, timeout=self.timeout)
        except FileNotFoundError as e:
            raise ProbeFailure(f"Executable not found: {cmd[0]}") from e
        except subprocess.TimeoutExpired as e:
            raise ProbeFailure(f"{Path(cmd[0]).name} timed out after {self.timeout}s on {path.name}") from e

        if proc.returncode != 0:
            stderr = (proc.stderr or '').strip()[:200]
            raise ProbeFailure(f"{Path(cmd[0]).name} failed on {path.name}: {stderr}")
        return proc

    def probe(self, file_path: Path | str) -> dict[str, Any]:
        """
        Read format and stream information for a file.

        Args:
            file_path: Path to the media file

        Returns:
            Dict with 'format' (dict) and 'streams' (list of dicts) keys

        Raises:
            ProbeFailure: If ffprobe fails or its output is not JSON
        """
        path = Path(file_path)
        proc = self._run(
            [
                self.ffprobe_path, '-v', 'error',
                '-print_format', 'json',
                '-show_format', '-show_streams',
                str(path),
            ],
            path,
        )
        try:
            data = json.loads(proc.stdout)
        except json.JSONDecodeError as e:
            raise ProbeFailure(f"Unparsable ffprobe output for {path.name}") from e

        return {
            'format': data.get('format') or {},
            'streams': data.get('streams') or [],
        }

    def first_stream(self, file_path: Path | str, codec_type: Optional[str] = None) -> dict[str, Any]:
        """
        Return the first stream of a file, optionally of a given codec type.

        Raises:
            ProbeFailure: If the file has no matching stream
        """
        streams = self.probe(file_path)['streams']
        for stream in streams:
            if codec_type is None or stream.get('codec_type') == codec_type:
                return stream

        wanted = f"{codec_type} stream" if codec_type else "stream"
        raise ProbeFailure(f"No readable {wanted} in {Path(file_path).name}")

    def format_info(self, file_path: Path | str) -> dict[str, Any]:
        """Return container-level information (duration, bit_rate, ...)."""
        return self.probe(file_path)['format']

    def save_frame(self, file_path: Path | str, seconds: float, dest: Path | str) -> Path:
        """
        Extract a single frame at the given offset and save it as an image.

        The output format follows the destination extension (.jpg for JPEG).

        Args:
            file_path: Path to the video file
            seconds: Offset into the video
            dest: Where to write the frame

        Returns:
            Path to the written frame

        Raises:
            ProbeFailure: If ffmpeg fails or writes no frame (e.g. offset past the end)
        """
        path = Path(file_path)
        dest = Path(dest)
        self._run(
            [
                self.ffmpeg_path, '-y', '-v', 'error',
                '-ss', f"{seconds:.3f}",
                '-i', str(path),
                '-frames:v', '1',
                '-q:v', '2',
                str(dest),
            ],
            path,
        )
        # ffmpeg exits 0 without output when seeking past the last frame
        if not dest.exists() or dest.stat().st_size == 0:
            raise ProbeFailure(f"No frame extracted from {path.name} at {seconds:.3f}s")
        return dest
