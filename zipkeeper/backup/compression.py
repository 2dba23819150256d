"""
Zip archive handling for backups.

Archives are named ``<unixSeconds>_UTC-<year>-<month>-<day>.zip``. The
seconds are zero-padded to 10 digits so that sorting names lexically sorts
them chronologically.
"""

import os
import shutil
import zipfile
from datetime import datetime, timezone
from typing import Optional


# Stream copy chunk size
COPY_BUFSIZE = 1024 * 1024


class CompressionError(Exception):
    """Raised when the archive cannot be created or finalized."""
    pass


def generate_archive_filename(now: Optional[datetime] = None) -> str:
    """
    Generate the archive filename for a backup taken at ``now``.

    Format: {unix_seconds:010d}_UTC-{year}-{month}-{day}.zip

    Args:
        now: Time of the backup (defaults to the current UTC time)

    Returns:
        Filename (without path)
    """
    if now is None:
        now = datetime.now(timezone.utc)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    now = now.astimezone(timezone.utc)
    seconds = int(now.timestamp())

    return f"{seconds:010d}_UTC-{now.year}-{now.month}-{now.day}.zip"


def open_archive(archive_path: str) -> zipfile.ZipFile:
    """
    Create a new zip archive for writing.

    Args:
        archive_path: Path of the archive to create (overwritten if present)

    Returns:
        ZipFile opened in write mode

    Raises:
        CompressionError: If the archive file cannot be created
    """
    try:
        return zipfile.ZipFile(archive_path, 'w', zipfile.ZIP_DEFLATED)
    except OSError as e:
        raise CompressionError(f"Failed to create archive {archive_path}: {e}")


def close_archive(zipf: zipfile.ZipFile):
    """
    Write the central directory and close the archive.

    Raises:
        CompressionError: If the archive cannot be finalized
    """
    try:
        zipf.close()
    except OSError as e:
        raise CompressionError(f"Failed to finalize archive {zipf.filename}: {e}")


def write_entry(zipf: zipfile.ZipFile, src_path: str, arcname: str):
    """
    Stream a file into the archive under ``arcname``.

    The entry keeps the modification time of the source file. A failure
    while copying leaves a truncated entry behind.

    Args:
        zipf: Archive opened for writing
        src_path: File to read
        arcname: Path of the entry inside the archive

    Raises:
        OSError: If the source cannot be read or the entry cannot be written
        ValueError: If the archive refuses the entry
    """
    with open(src_path, 'rb') as src:
        info = zipfile.ZipInfo.from_file(src_path, arcname, strict_timestamps=False)
        info.compress_type = zipfile.ZIP_DEFLATED

        with zipf.open(info, 'w') as dst:
            shutil.copyfileobj(src, dst, COPY_BUFSIZE)


def get_archive_size(archive_path: str) -> int:
    """
    Get the size of an archive file in bytes.

    Raises:
        CompressionError: If the file cannot be accessed
    """
    try:
        return os.path.getsize(archive_path)
    except OSError as e:
        raise CompressionError(f"Failed to get archive size: {e}")
