"""
TAR Archive utilities for Docker build contexts and archive uploads
"""

import fnmatch
import io
import logging
import os
import tarfile
from typing import Iterator, List, Optional

logger = logging.getLogger(__name__)


class _ChunkSink:
    """Write-only file object that hands written bytes back in chunks"""

    def __init__(self):
        self._chunks: List[bytes] = []

    def write(self, data) -> int:
        self._chunks.append(bytes(data))
        return len(data)

    def drain(self) -> bytes:
        chunks, self._chunks = self._chunks, []
        return b''.join(chunks)


def read_dockerignore(path: str) -> List[str]:
    """Exclude patterns from the context's .dockerignore (comments and blanks skipped)"""
    ignore_file = os.path.join(path, '.dockerignore')
    if not os.path.exists(ignore_file):
        return []
    with open(ignore_file, 'r', encoding='utf-8') as f:
        patterns = [line.strip() for line in f]
    return [p.rstrip('/') for p in patterns if p and not p.startswith('#')]


def _excluded(arcname: str, patterns: List[str]) -> bool:
    return any(
        fnmatch.fnmatch(arcname, pattern) or arcname.startswith(f"{pattern}/")
        for pattern in patterns
    )


def stream_tar_context(path: str, exclude: Optional[List[str]] = None,
                       dockerfile: Optional[str] = None) -> Iterator[bytes]:
    """
    Stream an uncompressed tar archive of a build context

    The archive is produced file by file, so a large context is never held
    in memory as a whole.

    Args:
        path: Build context directory
        exclude: Glob patterns to leave out (default: .dockerignore contents)
        dockerfile: Dockerfile path relative to the context, never excluded

    Yields:
        Archive bytes
    """
    patterns = read_dockerignore(path) if exclude is None else list(exclude)
    keep = {dockerfile or 'Dockerfile', '.dockerignore'}
    sink = _ChunkSink()
    file_count = 0

    # Small stream buffer so every file is handed on once it is added
    with tarfile.open(fileobj=sink, mode='w|', bufsize=tarfile.BLOCKSIZE) as tar:
        for root, dirs, files in os.walk(path):
            dirs.sort()
            rel_root = os.path.relpath(root, path)
            dirs[:] = [
                d for d in dirs
                if not _excluded(os.path.normpath(os.path.join(rel_root, d)), patterns)
            ]
            for file in sorted(files):
                file_path = os.path.join(root, file)
                arcname = os.path.normpath(os.path.join(rel_root, file)).replace(os.sep, '/')
                if arcname not in keep and _excluded(arcname, patterns):
                    continue
                tar.add(file_path, arcname=arcname, recursive=False)
                file_count += 1
                data = sink.drain()
                if data:
                    yield data

    tail = sink.drain()
    if tail:
        yield tail
    logger.debug(f"Streamed build context {path}: {file_count} files")


def create_tar_from_file(file_path: str, arcname: Optional[str] = None) -> bytes:
    """
    Create tar archive from a single file

    Args:
        file_path: Path to file to archive
        arcname: Name of file in archive (default: basename of file_path)

    Returns:
        Tar archive as bytes
    """
    if arcname is None:
        arcname = os.path.basename(file_path)

    tar_stream = io.BytesIO()

    with tarfile.open(fileobj=tar_stream, mode='w') as tar:
        tar.add(file_path, arcname=arcname)

    return tar_stream.getvalue()
