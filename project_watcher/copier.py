"""
Recursive template copier for Project Watcher.

Copies a template directory into a new project directory, preserving the
relative structure.  Supports collision protection (overwrite or skip) and
SHA-256 post-copy verification.  The copy is blocking; callers on the event
loop run it through ``asyncio.to_thread``.
"""

from __future__ import annotations

import hashlib
import logging
import os
import shutil
from dataclasses import dataclass, field
from pathlib import Path

from project_watcher.config import COLLISION_OVERWRITE, COLLISION_SKIP
from project_watcher.errors import AccessError

logger = logging.getLogger(__name__)

_HASH_CHUNK = 256 * 1024  # 256 KiB read chunks for hashing


def _sha256(filepath: Path) -> str:
    """Return the hex SHA-256 digest of *filepath*."""
    h = hashlib.sha256()
    with open(filepath, "rb") as fh:
        while chunk := fh.read(_HASH_CHUNK):
            h.update(chunk)
    return h.hexdigest()


@dataclass
class CopyRecord:
    """Record of a single file copy operation."""
    source: str
    destination: str
    size_bytes: int = 0
    success: bool = False
    verified: bool = False
    skipped: bool = False
    error: str = ""


@dataclass
class CopyStats:
    """Aggregated statistics for one recursive copy."""
    total_copied: int = 0
    total_failed: int = 0
    total_skipped: int = 0
    total_bytes: int = 0
    total_verified: int = 0
    directories_created: int = 0
    history: list[CopyRecord] = field(default_factory=list)

    def record(self, rec: CopyRecord) -> None:
        self.history.append(rec)
        if rec.skipped:
            self.total_skipped += 1
        elif rec.success:
            self.total_copied += 1
            self.total_bytes += rec.size_bytes
            if rec.verified:
                self.total_verified += 1
        else:
            self.total_failed += 1

    @property
    def failures(self) -> list[CopyRecord]:
        return [r for r in self.history if not r.success and not r.skipped]


class RecursiveCopier:
    """
    Copies a directory tree file by file.

    Parameters
    ----------
    collision_mode : str
        One of 'overwrite', 'skip'.
    verify : bool
        If True, compute SHA-256 checksums and compare after copy.
    """

    def __init__(
        self,
        collision_mode: str = COLLISION_OVERWRITE,
        verify: bool = True,
    ):
        self._collision_mode = collision_mode
        self._verify = verify

    def copy_tree(self, source_root: str | Path, destination_root: str | Path) -> CopyStats:
        """
        Copy everything below *source_root* into *destination_root*.

        Raises :class:`AccessError` if the source is not a readable directory.
        Per-file failures are recorded in the returned stats, not raised.
        """
        src = Path(source_root)
        dest = Path(destination_root)
        if not src.is_dir():
            raise AccessError(str(src), "template directory does not exist")

        stats = CopyStats()
        dest.mkdir(parents=True, exist_ok=True)
        for dirpath, dirnames, filenames in os.walk(src):
            rel = Path(dirpath).relative_to(src)
            for dirname in dirnames:
                target = dest / rel / dirname
                if not target.exists():
                    target.mkdir(parents=True)
                    stats.directories_created += 1
            for filename in filenames:
                stats.record(self._copy_file(Path(dirpath) / filename, dest / rel / filename))

        logger.info(
            "Copied %s -> %s: %d copied, %d skipped, %d failed",
            src, dest, stats.total_copied, stats.total_skipped, stats.total_failed,
        )
        return stats

    def _copy_file(self, source_path: Path, dest: Path) -> CopyRecord:
        rec = CopyRecord(source=str(source_path), destination=str(dest))

        if dest.exists() and self._collision_mode == COLLISION_SKIP:
            rec.skipped = True
            rec.error = "Skipped (collision, file already exists)"
            logger.info("Skipping (collision): %s", dest)
            return rec

        try:
            rec.size_bytes = source_path.stat().st_size
            logger.debug("Copying %s -> %s (%d bytes)", source_path, dest, rec.size_bytes)
            shutil.copy2(str(source_path), str(dest))

            # ---- post-copy verification ----
            if self._verify:
                src_hash = _sha256(source_path)
                dst_hash = _sha256(dest)
                if src_hash == dst_hash:
                    rec.verified = True
                    rec.success = True
                else:
                    rec.error = (
                        f"Verification failed: SHA-256 mismatch "
                        f"(src={src_hash[:12]}… dst={dst_hash[:12]}…)"
                    )
                    logger.error("Checksum mismatch for %s", dest)
            elif dest.stat().st_size == rec.size_bytes:
                rec.success = True
            else:
                rec.error = "Post-copy size mismatch"
                logger.error("Size mismatch after copying %s", dest)

        except OSError as exc:
            rec.error = str(exc)
            logger.error("Copy failed for %s: %s", source_path, exc)

        return rec
