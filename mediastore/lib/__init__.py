"""
Library modules for mediastore.

Classification, content hashing, probing, metadata extraction and storage
used by the media service.
"""
from mediastore.lib.classify import classify, detect_mime_type
from mediastore.lib.hashing import calculate_file_hash, calculate_sha256, identify
from mediastore.lib.probe import MediaProbe
from mediastore.lib.metadata import (
    extract_additions,
    ImageAdditions,
    VideoAdditions,
    AudioAdditions,
)
from mediastore.lib.storage import MediaStorage, UploadedFile

__all__ = [
    # Classification
    'classify',
    'detect_mime_type',
    # Hashing
    'calculate_file_hash',
    'calculate_sha256',
    'identify',
    # Probing and metadata
    'MediaProbe',
    'extract_additions',
    'ImageAdditions',
    'VideoAdditions',
    'AudioAdditions',
    # Storage
    'MediaStorage',
    'UploadedFile',
]
