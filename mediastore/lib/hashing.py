"""
File hashing utilities for duplicate detection.

The content hash is the identity of a media file: two uploads with identical
bytes always produce the same digest regardless of filename or MIME type.
"""
from pathlib import Path
import hashlib
import logging

logger = logging.getLogger(__name__)

DEFAULT_ALGORITHM = 'sha256'


def calculate_file_hash(
    file_path: Path | str,
    algorithm: str = DEFAULT_ALGORITHM,
    chunk_size: int = 65536
) -> str:
    """
    Calculate the content hash of a file using chunked reading.

    Reads file in chunks to avoid memory issues with large video files.

    Args:
        file_path: Path to the file (Path object or string)
        algorithm: Any hashlib algorithm name (default sha256)
        chunk_size: Size of chunks to read (default 64KB)

    Returns:
        Hex digest string

    Raises:
        OSError: If file cannot be read
        ValueError: If the algorithm is not supported by hashlib
    """
    path = Path(file_path) if isinstance(file_path, str) else file_path

    digest = hashlib.new(algorithm)
    if digest.digest_size == 0:
        raise ValueError(f"Hash algorithm '{algorithm}' has no fixed digest size")

    with open(path, 'rb') as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)

    logger.debug(f"{algorithm} of {path.name}: {digest.hexdigest()}")
    return digest.hexdigest()


def calculate_sha256(file_path: Path | str, chunk_size: int = 65536) -> str:
    """Calculate SHA256 hash of file (64 hex characters)."""
    return calculate_file_hash(file_path, 'sha256', chunk_size)


# Content identity used for deduplication
identify = calculate_file_hash
