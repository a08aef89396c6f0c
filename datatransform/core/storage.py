"""Filesystem access for inputs, metadata and outputs.

Uses fsspec for abstraction, so local paths, ``file://`` URLs and any other
installed fsspec backend (s3, gcs, ...) work the same way. Rename atomicity
is whatever the backend provides; on the local filesystem it is a POSIX
rename.
"""

import posixpath
from typing import Any, Iterator

from fsspec import AbstractFileSystem
from fsspec.core import url_to_fs

from datatransform.core.exceptions import StorageError

DEFAULT_ENCODING = "utf-8"


def is_hidden(path: str) -> bool:
    """Return True for part-file names the input listing must skip."""
    name = posixpath.basename(path.rstrip("/"))
    return name.startswith(".") or name.startswith("_")


class Storage:
    """A filesystem bound to one fsspec protocol.

    Paths handed to the methods are plain paths for that filesystem (as
    returned by ``resolve``), not URLs.
    """

    def __init__(self, fs: AbstractFileSystem, encoding: str = DEFAULT_ENCODING):
        self.fs = fs
        self.encoding = encoding

    @classmethod
    def for_url(
        cls,
        url: str,
        storage_options: dict[str, Any] | None = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> tuple["Storage", str]:
        """Build a Storage for a URL and return it with the stripped path."""
        try:
            fs, path = url_to_fs(str(url), **(storage_options or {}))
        except Exception as e:
            raise StorageError(
                f"Failed to create filesystem for {url}: {e}",
                context={"url": str(url)},
            ) from e
        return cls(fs, encoding=encoding), path

    @staticmethod
    def join(base: str, *parts: str) -> str:
        return posixpath.join(base.rstrip("/"), *parts)

    @staticmethod
    def parent(path: str) -> str:
        return posixpath.dirname(path.rstrip("/"))

    @staticmethod
    def basename(path: str) -> str:
        return posixpath.basename(path.rstrip("/"))

    def exists(self, path: str) -> bool:
        return self.fs.exists(path)

    def list_part_files(self, path: str) -> list[str]:
        """List the input files under ``path`` in alphabetical order.

        A plain file is returned on its own. Directory entries whose names
        start with ``.`` or ``_`` are skipped.

        Raises:
            StorageError: If the path does not exist or holds no part files
        """
        if not self.fs.exists(path):
            raise StorageError(f"Input path not found: {path}", context={"path": path})

        if not self.fs.isdir(path):
            return [path]

        try:
            entries = self.fs.ls(path, detail=False)
        except OSError as e:
            raise StorageError(
                f"Failed to list input directory {path}: {e}", context={"path": path}
            ) from e

        files = sorted(
            entry for entry in entries if not is_hidden(entry) and self.fs.isfile(entry)
        )
        if not files:
            raise StorageError(
                f"Input directory contains no part files: {path}",
                context={"path": path},
            )
        return files

    def iter_lines(self, path: str) -> Iterator[str]:
        """Yield the lines of a text file without line terminators."""
        try:
            with self.fs.open(path, "r", encoding=self.encoding, newline="") as f:
                for line in f:
                    yield line.rstrip("\r\n")
        except OSError as e:
            raise StorageError(
                f"Failed to read {path}: {e}", context={"path": path}
            ) from e

    def read_first_line(self, path: str) -> str | None:
        """Return the first line of a file, or None if it is empty."""
        for line in self.iter_lines(path):
            return line
        return None

    def read_text(self, path: str) -> str:
        try:
            with self.fs.open(path, "r", encoding=self.encoding) as f:
                return f.read()
        except OSError as e:
            raise StorageError(
                f"Failed to read {path}: {e}", context={"path": path}
            ) from e

    def write_text(self, path: str, text: str) -> None:
        try:
            self.fs.makedirs(self.parent(path), exist_ok=True)
            with self.fs.open(path, "w", encoding=self.encoding) as f:
                f.write(text)
        except OSError as e:
            raise StorageError(
                f"Failed to write {path}: {e}", context={"path": path}
            ) from e

    def write_lines(self, path: str, lines: Iterator[str] | list[str]) -> None:
        """Write lines, each terminated with a newline."""
        try:
            self.fs.makedirs(self.parent(path), exist_ok=True)
            with self.fs.open(path, "w", encoding=self.encoding, newline="") as f:
                for line in lines:
                    f.write(line)
                    f.write("\n")
        except OSError as e:
            raise StorageError(
                f"Failed to write {path}: {e}", context={"path": path}
            ) from e

    def open_binary(self, path: str, mode: str = "wb"):
        self.fs.makedirs(self.parent(path), exist_ok=True)
        return self.fs.open(path, mode)

    def makedirs(self, path: str) -> None:
        self.fs.makedirs(path, exist_ok=True)

    def rename(self, src: str, dst: str) -> None:
        try:
            self.fs.mv(src, dst)
        except OSError as e:
            raise StorageError(
                f"Failed to rename {src} to {dst}: {e}",
                context={"src": src, "dst": dst},
            ) from e

    def remove(self, path: str) -> None:
        """Remove a file or directory tree if it exists."""
        if not self.fs.exists(path):
            return
        try:
            self.fs.rm(path, recursive=True)
        except OSError as e:
            raise StorageError(
                f"Failed to remove {path}: {e}", context={"path": path}
            ) from e
