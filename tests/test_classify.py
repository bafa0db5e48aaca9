"""Tests for MIME classification."""
import pytest

from mediastore.exceptions import UnknownMediaType
from mediastore.lib.classify import classify, detect_mime_type
from mediastore.models import MediaKind


class TestClassify:
    """Tests for classify()."""

    @pytest.mark.parametrize('mime, kind', [
        ('image/png', MediaKind.IMAGE),
        ('image/svg+xml', MediaKind.IMAGE),
        ('video/mp4', MediaKind.VIDEO),
        ('audio/mpeg', MediaKind.AUDIO),
        ('Video/QuickTime', MediaKind.VIDEO),
    ])
    def test_known_prefixes(self, mime, kind):
        assert classify(mime) == kind

    @pytest.mark.parametrize('mime', [
        'text/plain',
        'application/pdf',
        'image',
        '',
        None,
    ])
    def test_unknown_types_rejected(self, mime):
        with pytest.raises(UnknownMediaType):
            classify(mime)

    def test_unknown_media_type_is_value_error(self):
        """Callers catching ValueError also see unmapped MIME types."""
        with pytest.raises(ValueError):
            classify('text/plain')


class TestDetectMimeType:
    """Tests for detect_mime_type() (needs libmagic)."""

    def test_png_detected_from_content(self, sample_image_file, temp_dir):
        pytest.importorskip('magic')
        disguised = temp_dir / 'photo.txt'
        disguised.write_bytes(sample_image_file.read_bytes())
        assert detect_mime_type(disguised) == 'image/png'
