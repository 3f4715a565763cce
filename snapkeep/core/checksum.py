"""
Content digests for snapshot integrity.

SHA-256 computed over fixed-size chunks so memory use does not depend on
file size. Digests are lower-case hex and comparable with any other
SHA-256 implementation (e.g. ``sha256sum``).

Usage:
    from snapkeep.core.checksum import ChecksumEngine

    engine = ChecksumEngine()
    digest = engine.digest_file(Path("/etc/fstab"))
"""

import hashlib
import io
from pathlib import Path
from typing import BinaryIO, Union

from .errors import NotFoundError, SnapshotIOError


DEFAULT_CHUNK_SIZE = 8192
DIGEST_HEX_LENGTH = 64


class ChecksumEngine:
    """Streams bytes through SHA-256 in bounded chunks."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        if chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size

    def digest_stream(self, stream: BinaryIO) -> str:
        """Digest everything remaining in a binary stream."""
        hasher = hashlib.sha256()
        while True:
            chunk = stream.read(self.chunk_size)
            if not chunk:
                break
            hasher.update(chunk)
        return hasher.hexdigest()

    def digest_bytes(self, data: bytes) -> str:
        return self.digest_stream(io.BytesIO(data))

    def digest_file(self, path: Union[str, Path]) -> str:
        """
        Digest a file on disk.

        Raises:
            NotFoundError: If the file does not exist
            SnapshotIOError: If the file cannot be opened or read
        """
        path = Path(path)
        try:
            with open(path, 'rb') as f:
                return self.digest_stream(f)
        except FileNotFoundError:
            raise NotFoundError(path)
        except OSError as e:
            raise SnapshotIOError.from_os_error("checksum", path, e) from e

    def verify_file(self, path: Union[str, Path], expected: str) -> bool:
        """True if the file's current digest equals ``expected``."""
        return self.digest_file(path) == expected.lower()


def short(digest: str, length: int = 16) -> str:
    """Digest prefix for log and event text."""
    return digest[:length]
