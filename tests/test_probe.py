"""Tests for the ffprobe/ffmpeg wrapper."""
import json
import shutil
import subprocess
from types import SimpleNamespace

import pytest

from mediastore.exceptions import ProbeFailure
from mediastore.lib import probe as probe_module
from mediastore.lib.probe import MediaProbe

FFPROBE_OUTPUT = {
    'streams': [
        {'codec_type': 'audio', 'duration': '10.020000'},
        {'codec_type': 'video', 'duration': '10.000000', 'width': 640, 'height': 360},
    ],
    'format': {'duration': '10.020000', 'bit_rate': '128000'},
}


def completed(stdout='', returncode=0, stderr=''):
    return SimpleNamespace(stdout=stdout, stderr=stderr, returncode=returncode)


@pytest.fixture
def calls(monkeypatch):
    """Patch subprocess.run; returns the list of issued commands."""
    issued = []

    def fake_run(cmd, **kwargs):
        issued.append(cmd)
        if '-show_streams' in cmd:
            return completed(json.dumps(FFPROBE_OUTPUT))
        # ffmpeg: write the requested frame
        with open(cmd[-1], 'wb') as f:
            f.write(b'\xff\xd8\xff')
        return completed()

    monkeypatch.setattr(probe_module.subprocess, 'run', fake_run)
    return issued


class TestProbe:
    """Tests for MediaProbe.probe() and helpers."""

    def test_probe_parses_json(self, calls, sample_video_file):
        info = MediaProbe().probe(sample_video_file)
        assert info['format']['duration'] == '10.020000'
        assert len(info['streams']) == 2
        assert '-show_streams' in calls[0]
        assert calls[0][-1] == str(sample_video_file)

    def test_first_stream_by_codec_type(self, calls, sample_video_file):
        stream = MediaProbe().first_stream(sample_video_file, 'video')
        assert stream['width'] == 640

    def test_first_stream_any(self, calls, sample_video_file):
        assert MediaProbe().first_stream(sample_video_file)['codec_type'] == 'audio'

    def test_first_stream_missing(self, calls, sample_video_file):
        with pytest.raises(ProbeFailure):
            MediaProbe().first_stream(sample_video_file, 'subtitle')

    def test_format_info(self, calls, sample_audio_file):
        assert MediaProbe().format_info(sample_audio_file)['bit_rate'] == '128000'

    def test_custom_binary_paths(self, calls, sample_video_file):
        MediaProbe(ffprobe_path='/opt/ffmpeg/bin/ffprobe').probe(sample_video_file)
        assert calls[0][0] == '/opt/ffmpeg/bin/ffprobe'


class TestProbeFailures:
    """Every subprocess failure surfaces as ProbeFailure."""

    def test_non_zero_exit(self, monkeypatch, sample_video_file):
        monkeypatch.setattr(
            probe_module.subprocess, 'run',
            lambda cmd, **kw: completed(returncode=1, stderr='Invalid data found')
        )
        with pytest.raises(ProbeFailure, match='Invalid data'):
            MediaProbe().probe(sample_video_file)

    def test_missing_binary(self, monkeypatch, sample_video_file):
        def fake_run(cmd, **kwargs):
            raise FileNotFoundError(cmd[0])
        monkeypatch.setattr(probe_module.subprocess, 'run', fake_run)
        with pytest.raises(ProbeFailure, match='not found'):
            MediaProbe().probe(sample_video_file)

    def test_timeout(self, monkeypatch, sample_video_file):
        def fake_run(cmd, **kwargs):
            raise subprocess.TimeoutExpired(cmd, kwargs['timeout'])
        monkeypatch.setattr(probe_module.subprocess, 'run', fake_run)
        with pytest.raises(ProbeFailure, match='timed out'):
            MediaProbe(timeout=1).probe(sample_video_file)

    def test_garbage_output(self, monkeypatch, sample_video_file):
        monkeypatch.setattr(probe_module.subprocess, 'run', lambda cmd, **kw: completed('not json'))
        with pytest.raises(ProbeFailure):
            MediaProbe().probe(sample_video_file)

    def test_no_frame_written(self, monkeypatch, sample_video_file, temp_dir):
        """ffmpeg exits 0 but writes nothing when seeking past the end."""
        monkeypatch.setattr(probe_module.subprocess, 'run', lambda cmd, **kw: completed())
        with pytest.raises(ProbeFailure, match='No frame'):
            MediaProbe().save_frame(sample_video_file, 2.0, temp_dir / 'frame.jpg')


class TestSaveFrame:
    """Tests for MediaProbe.save_frame()."""

    def test_seek_offset_and_destination(self, calls, sample_video_file, temp_dir):
        dest = temp_dir / 'frame.jpg'
        result = MediaProbe().save_frame(sample_video_file, 2, dest)
        assert result == dest
        cmd = calls[0]
        assert cmd[cmd.index('-ss') + 1] == '2.000'
        assert cmd[cmd.index('-frames:v') + 1] == '1'


@pytest.mark.skipif(
    shutil.which('ffmpeg') is None or shutil.which('ffprobe') is None,
    reason='ffmpeg/ffprobe not installed'
)
class TestRealFFmpeg:
    """Integration against the real binaries with a generated 10 second clip."""

    @pytest.fixture
    def ten_second_clip(self, temp_dir):
        path = temp_dir / 'clip.mp4'
        subprocess.run(
            ['ffmpeg', '-y', '-v', 'error', '-f', 'lavfi',
             '-i', 'testsrc=duration=10:size=320x240:rate=10',
             '-pix_fmt', 'yuv420p', str(path)],
            check=True, capture_output=True, timeout=60,
        )
        return path

    def test_video_additions(self, ten_second_clip, temp_dir):
        from mediastore.lib.metadata import get_video_additions

        additions = get_video_additions(ten_second_clip, MediaProbe(), temp_dir)
        assert additions.duration == pytest.approx(10.0, abs=0.2)
        assert (additions.width, additions.height) == (320, 240)
        assert additions.preview == 'clip.jpg'
        assert (temp_dir / 'clip.jpg').stat().st_size > 0
