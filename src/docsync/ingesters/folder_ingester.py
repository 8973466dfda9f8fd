"""Bounded discovery of indexable files inside a local folder."""

import fnmatch
import hashlib
import logging
import os
from pathlib import Path
from typing import Iterable, Iterator, Optional

from docsync.config import DEFAULT_EXCLUDE_PATTERNS
from docsync.models import FileMetadata
from docsync.utils.binary import detect_binary, is_binary_extension

logger = logging.getLogger(__name__)


def _is_glob(pattern: str) -> bool:
    return any(ch in pattern for ch in "*?[")


def should_skip(parts: Iterable[str], patterns: Iterable[str]) -> bool:
    """Check whether any path fragment is hidden or matches an exclusion pattern.

    Plain patterns must equal a fragment exactly; patterns containing glob
    characters are matched with fnmatch.
    """
    patterns = tuple(patterns)
    for part in parts:
        if part.startswith("."):
            return True
        for pattern in patterns:
            if part == pattern or (_is_glob(pattern) and fnmatch.fnmatch(part, pattern)):
                return True
    return False


def _normalize_extensions(extensions: Iterable[str]) -> frozenset[str]:
    return frozenset(
        ("." + ext.lower().lstrip(".")) for ext in extensions if ext.strip(". ")
    )


def hash_content(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()


class FolderIngester:
    """Depth- and count-bounded walker for local filesystem folders.

    walk() is a lazy generator: each call restarts the traversal from the
    root. Entries are visited in sorted order so repeated walks over an
    unchanged tree agree. Directory symlinks are not followed.
    """

    def __init__(
        self,
        exclude_patterns: Iterable[str] = DEFAULT_EXCLUDE_PATTERNS,
        include_extensions: Iterable[str] = (),
        max_depth: int = 12,
        max_entries: int = 10_000,
        recursive: bool = True,
        max_file_bytes: Optional[int] = None,
    ):
        self.exclude_patterns = tuple(exclude_patterns)
        self.include_extensions = _normalize_extensions(include_extensions)
        self.max_depth = max_depth if recursive else 0
        self.max_entries = max_entries
        self.max_file_bytes = max_file_bytes
        self.truncated = False

    def accepts(self, relative_path: str) -> bool:
        """Check a folder-relative path against exclusions and extension filters."""
        rel = Path(relative_path)
        if should_skip(rel.parts, self.exclude_patterns):
            return False
        if is_binary_extension(rel):
            return False
        if self.include_extensions and rel.suffix.lower() not in self.include_extensions:
            return False
        return True

    def walk(self, source: Path) -> Iterator[FileMetadata]:
        """Yield metadata for every indexable file under ``source``.

        Stops after ``max_entries`` files and sets ``truncated``.
        """
        self.truncated = False
        root = Path(source)
        emitted = 0
        # (directory, depth) pairs; depth 0 is the root itself.
        stack: list[tuple[Path, int]] = [(root, 0)]

        while stack:
            directory, depth = stack.pop()
            try:
                with os.scandir(directory) as it:
                    entries = sorted(it, key=lambda e: e.name)
            except OSError as e:
                if directory == root:
                    raise
                logger.debug(f"Skipping unreadable directory {directory}: {e}")
                continue

            subdirs: list[Path] = []
            for entry in entries:
                if should_skip((entry.name,), self.exclude_patterns):
                    continue
                try:
                    if entry.is_dir(follow_symlinks=False):
                        if depth < self.max_depth:
                            subdirs.append(Path(entry.path))
                        continue
                    if not entry.is_file():
                        continue
                    stat = entry.stat()
                except OSError:
                    continue

                full_path = Path(entry.path)
                relative = full_path.relative_to(root).as_posix()
                if not self.accepts(relative):
                    continue
                if self.max_file_bytes is not None and stat.st_size > self.max_file_bytes:
                    logger.debug(f"Skipping oversized file {relative} ({stat.st_size} bytes)")
                    continue

                if emitted >= self.max_entries:
                    self.truncated = True
                    logger.warning(
                        f"Stopped walking {root} after {self.max_entries} files"
                    )
                    return
                emitted += 1
                yield FileMetadata(
                    path=str(full_path),
                    relative_path=relative,
                    size_bytes=stat.st_size,
                    mtime=stat.st_mtime,
                    extension=full_path.suffix.lower(),
                )

            # Reverse so the stack pops subdirectories in sorted order.
            stack.extend((d, depth + 1) for d in reversed(subdirs))

    def read(self, metadata: FileMetadata) -> tuple[Optional[str], str]:
        """Read a discovered file.

        Returns:
            (text, content_hash). Text is None for binary content.
        """
        raw = Path(metadata.path).read_bytes()
        digest = hash_content(raw)
        if detect_binary(metadata.relative_path, raw):
            return None, digest
        return raw.decode("utf-8", errors="replace"), digest
