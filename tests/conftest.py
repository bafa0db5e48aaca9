"""Shared fixtures for mediastore tests."""
from pathlib import Path

import pytest
from PIL import Image

from mediastore.exceptions import ProbeFailure


@pytest.fixture
def temp_dir(tmp_path):
    """Scratch directory for files created by a test."""
    return tmp_path


@pytest.fixture
def sample_text_file(temp_dir):
    path = temp_dir / "notes.txt"
    path.write_text("Plain text, not media")
    return path


@pytest.fixture
def sample_image_file(temp_dir):
    """800x600 PNG."""
    path = temp_dir / "photo.png"
    Image.new('RGB', (800, 600), color=(200, 40, 40)).save(path, 'PNG')
    return path


@pytest.fixture
def sample_video_file(temp_dir):
    """Fake video bytes; probing is done by FakeProbe."""
    path = temp_dir / "clip.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"video-bytes" * 32)
    return path


@pytest.fixture
def sample_audio_file(temp_dir):
    path = temp_dir / "song.mp3"
    path.write_bytes(b"ID3" + b"audio-bytes" * 32)
    return path


class FakeProbe:
    """Stands in for MediaProbe; records calls and writes a tiny JPEG as frame."""

    def __init__(self, duration='10.000000', width=1280, height=720, streams=None, fail=False):
        self.duration = duration
        self.width = width
        self.height = height
        self.streams = streams
        self.fail = fail
        self.frames = []

    def probe(self, file_path):
        if self.fail:
            raise ProbeFailure(f"ffprobe failed on {Path(file_path).name}")
        streams = self.streams
        if streams is None:
            streams = [
                {'codec_type': 'audio', 'duration': self.duration},
                {'codec_type': 'video', 'duration': self.duration,
                 'width': self.width, 'height': self.height},
            ]
        return {'format': {'duration': self.duration}, 'streams': streams}

    def format_info(self, file_path):
        return self.probe(file_path)['format']

    def save_frame(self, file_path, seconds, dest):
        self.frames.append((Path(file_path), seconds, Path(dest)))
        Image.new('RGB', (16, 9)).save(dest, 'JPEG')
        return Path(dest)


@pytest.fixture
def fake_probe():
    return FakeProbe()


@pytest.fixture
def app(temp_dir):
    """Application on a temporary SQLite database and storage root."""
    from mediastore import create_app, db

    app = create_app('testing', {
        'SQLALCHEMY_DATABASE_URI': f"sqlite:///{temp_dir / 'test.db'}",
        'PUBLIC_STORAGE_DIR': temp_dir / 'public',
        'UPLOAD_TMP_FOLDER': temp_dir / 'uploads',
        'INSTANCE_DIR': None,
    })

    with app.app_context():
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def service(app, fake_probe):
    from mediastore.service import build_media_service

    service = build_media_service(app)
    service.probe = fake_probe
    return service
