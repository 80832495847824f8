"""Local disk implementation of the FileSystem port."""

import os

from deploygraph_engine.dependency.domain.ports import DirEntry
from deploygraph_shared.common.exceptions import FileSystemAccessError


class LocalFileSystem:
    """
    os.scandir / open based FileSystem.

    Undecodable bytes are replaced with U+FFFD, so a stray non-UTF-8 byte in
    a comment does not hide the imports of the rest of the file.
    """

    def __init__(self, encoding: str = "utf-8"):
        self.encoding = encoding

    def list_dir(self, path: str) -> list[DirEntry]:
        try:
            with os.scandir(path) as it:
                return [
                    DirEntry(
                        name=entry.name,
                        path=entry.path,
                        is_dir=entry.is_dir(follow_symlinks=False),
                        is_file=entry.is_file(),
                    )
                    for entry in it
                ]
        except OSError as e:
            raise FileSystemAccessError(f"Cannot list directory: {path}", details={"errno": e.errno}) from e

    def read_text(self, path: str) -> str:
        try:
            with open(path, encoding=self.encoding, errors="replace") as f:
                return f.read()
        except OSError as e:
            raise FileSystemAccessError(f"Cannot read file: {path}", details={"error": str(e)}) from e
