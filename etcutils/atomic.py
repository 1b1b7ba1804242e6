"""Crash-safe replacement of database files

Content is written to a temporary file beside the target and renamed over
it, so readers see either the old file or the new one, never a partial
write. The temporary file lives in the target's directory because a rename
is only atomic within one filesystem.
"""

from __future__ import annotations
import logging
import os
from pathlib import Path
import shutil
import tempfile
from typing import Optional, Union

from .constants import BACKUP_SUFFIX, FILE_ENCODING, FILE_ERRORS
from .errors import BackupError
from .filecleanup import FileCleanup

logger = logging.getLogger(__name__)

PathArg = Union[str, Path]


def backup_path(path: PathArg) -> Path:
    """Get the backup path of a database file: the path with "-" appended"""
    path = Path(path)
    return path.with_name(path.name + BACKUP_SUFFIX)


def _mkstemp_beside(path: Path) -> tuple[int, str]:
    return tempfile.mkstemp(
        prefix=f".{path.name}.",
        suffix=".tmp",
        dir=path.parent,
    )


class AtomicWriter:
    def __init__(self, continue_on_backup_error: bool = False):
        self.continue_on_backup_error = continue_on_backup_error

    def backup(self, path: PathArg) -> Optional[Path]:
        """Copy path to its backup, preserving mode, ownership and times

        Returns the backup path, or None if there was nothing to back up
        (or the backup failed and failures are configured to be ignored).

        Raises BackupError otherwise; the target is never modified here.
        """
        path = Path(path)
        if not path.exists():
            return None

        dest = backup_path(path)
        try:
            with FileCleanup() as cleanup:
                fd, tmp = _mkstemp_beside(path)
                os.close(fd)
                cleanup.register(tmp)

                shutil.copy2(path, tmp)
                st = path.stat()
                os.chown(tmp, st.st_uid, st.st_gid)

                os.rename(tmp, dest)
                cleanup.release(tmp)
        except OSError as err:
            if not self.continue_on_backup_error:
                raise BackupError(path, str(err)) from err
            logger.warning("Continuing without backup of %s: %s", path, err)
            return None

        logger.debug("Backed up %s to %s", path, dest)
        return dest

    def write(self, path: PathArg, content: str, mode: int) -> None:
        """Atomically replace path with content

        The new file gets the given permission bits and, if path already
        exists, its owning user and group. On any failure the temporary
        file is removed and path is left untouched.
        """
        path = Path(path)

        with FileCleanup() as cleanup:
            fd, tmp = _mkstemp_beside(path)
            cleanup.register(tmp)

            with os.fdopen(fd, "w", encoding=FILE_ENCODING, errors=FILE_ERRORS) as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())

                os.fchmod(f.fileno(), mode)
                if path.exists():
                    st = path.stat()
                    os.fchown(f.fileno(), st.st_uid, st.st_gid)

            os.rename(tmp, path)
            cleanup.release(tmp)

        logger.debug("Wrote %s (mode %04o)", path, mode)
