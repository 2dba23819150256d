"""
Source traversal for backup operations.

Walks a configured source path depth-first and streams every regular file
into the archive. Failures are collected per path instead of aborting the
walk, so one unreadable file does not cost the rest of the backup.
"""

import os
import stat
import zipfile
from fnmatch import fnmatchcase
from typing import List, Optional, Tuple

from .compression import write_entry


class SourceError(Exception):
    """Raised when a source path cannot be archived."""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path


def source_arcname(index: int, path: str) -> str:
    """
    Build the archive prefix for the source at 1-based ``index``.

    The index keeps sources with the same base name apart.
    """
    return f"source-{index}:-{os.path.basename(os.path.normpath(path))}"


def translate_glob(pattern: str) -> str:
    """
    Convert an exclusion glob to fnmatch syntax.

    Character classes may be negated with ``^`` as well as ``!``.

    Raises:
        ValueError: If a character class is never closed
    """
    out = []
    i, n = 0, len(pattern)
    while i < n:
        ch = pattern[i]
        if ch != '[':
            out.append(ch)
            i += 1
            continue

        j = i + 1
        if j < n and pattern[j] in '!^':
            j += 1
        # A leading ']' is part of the class
        if j < n and pattern[j] == ']':
            j += 1
        end = pattern.find(']', j)
        if end == -1:
            raise ValueError(f"malformed exclusion pattern '{pattern}'")

        body = pattern[i + 1:end]
        if body.startswith('^'):
            body = '!' + body[1:]
        out.append(f"[{body}]")
        i = end + 1

    return ''.join(out)


def should_exclude(path: str, blacklist: List[str]) -> bool:
    """
    Check the base name of a path against shell-style exclusion globs.

    Args:
        path: Path to check
        blacklist: Glob patterns (``*``, ``?``, ``[...]``, ``[^...]``)

    Returns:
        True if any pattern matches the base name

    Raises:
        ValueError: If a pattern is malformed
    """
    name = os.path.basename(os.path.normpath(path))
    return any(fnmatchcase(name, translate_glob(pattern)) for pattern in blacklist)


def add_source(
    zipf: zipfile.ZipFile,
    src_path: str,
    arcname: str,
    blacklist: Optional[List[str]] = None
) -> List[SourceError]:
    """
    Add a file or directory tree to the archive.

    Args:
        zipf: Archive opened for writing
        src_path: File or directory to back up
        arcname: Entry path (or prefix, for directories) inside the archive
        blacklist: Glob patterns matched against base names

    Returns:
        Errors encountered, one per failing path (empty on success)
    """
    return _add_path(zipf, src_path, arcname, blacklist or [], ())


def _add_path(
    zipf: zipfile.ZipFile,
    src_path: str,
    arcname: str,
    blacklist: List[str],
    ancestors: Tuple[str, ...]
) -> List[SourceError]:
    try:
        if should_exclude(src_path, blacklist):
            return []
    except ValueError as e:
        return [SourceError(src_path, str(e))]

    try:
        st = os.stat(src_path)
    except OSError as e:
        return [SourceError(src_path, e.strerror or str(e))]

    if stat.S_ISDIR(st.st_mode):
        return _add_directory(zipf, src_path, arcname, blacklist, ancestors)

    if not stat.S_ISREG(st.st_mode):
        return [SourceError(src_path, "unsupported file type")]

    try:
        write_entry(zipf, src_path, arcname)
    except (OSError, ValueError, RuntimeError) as e:
        # zipfile raises RuntimeError when a file outgrows its zip64 sizing
        return [SourceError(src_path, f"failed to archive: {e}")]

    return []


def _add_directory(
    zipf: zipfile.ZipFile,
    src_path: str,
    arcname: str,
    blacklist: List[str],
    ancestors: Tuple[str, ...]
) -> List[SourceError]:
    # Symlinks are followed; a directory already on the descent stack is a loop
    real_path = os.path.realpath(src_path)
    if real_path in ancestors:
        return [SourceError(src_path, f"symbolic link cycle back to {real_path}")]

    try:
        names = sorted(os.listdir(src_path))
    except OSError as e:
        return [SourceError(src_path, e.strerror or str(e))]

    errors = []
    for name in names:
        errors.extend(_add_path(
            zipf,
            os.path.join(src_path, name),
            f"{arcname}/{name}",
            blacklist,
            ancestors + (real_path,)
        ))

    return errors
