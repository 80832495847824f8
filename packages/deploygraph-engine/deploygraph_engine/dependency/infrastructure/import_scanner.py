"""
Import Scanner

Walks a package directory (bounded depth) and extracts import-like
identifiers as candidate dependency names:

    use my_crate::thing;      → ("my_crate", use)
    extern crate my_crate;    → ("my_crate", extern_crate)
    mod my_module;            → ("my_module", mod)

Patterns are anchored at the start of the trimmed line and the first match
wins. Unreadable directories and files are logged and skipped.
"""

import re
from collections.abc import Iterable, Sequence

from deploygraph_engine.dependency.domain.models import (
    DEFAULT_MAX_SOURCE_DEPTH,
    DEFAULT_SOURCE_EXTENSIONS,
    ImportRecord,
    ImportType,
    Package,
)
from deploygraph_engine.dependency.domain.ports import FileSystem, has_extension
from deploygraph_shared.common.exceptions import FileSystemAccessError
from deploygraph_shared.common.observability import get_logger

logger = get_logger(__name__)

# Build output, VCS metadata, vendored dependencies
SKIPPED_DIRECTORIES = frozenset({"target", "node_modules", ".git", "out"})

IMPORT_PATTERNS: tuple[tuple[ImportType, re.Pattern[str]], ...] = (
    (ImportType.USE, re.compile(r"^use\s+([a-zA-Z_][a-zA-Z0-9_]*)")),
    (ImportType.EXTERN_CRATE, re.compile(r"^extern\s+crate\s+([a-zA-Z_][a-zA-Z0-9_]*)")),
    (ImportType.MOD, re.compile(r"^mod\s+([a-zA-Z_][a-zA-Z0-9_]*)")),
)


def parse_import_line(line: str) -> tuple[ImportType, str] | None:
    """(import_type, identifier) for one trimmed line, or None."""
    for import_type, pattern in IMPORT_PATTERNS:
        match = pattern.match(line)
        if match:
            return import_type, match.group(1)
    return None


class ImportScanner:
    """Extracts ImportRecords from package sources."""

    def __init__(
        self,
        filesystem: FileSystem,
        extensions: Sequence[str] = DEFAULT_SOURCE_EXTENSIONS,
        max_depth: int = DEFAULT_MAX_SOURCE_DEPTH,
        skipped_directories: Iterable[str] = SKIPPED_DIRECTORIES,
    ):
        """
        Args:
            filesystem: File access port
            extensions: Source file extensions to scan
            max_depth: Directory recursion limit (package directory = 0)
            skipped_directories: Directory names never descended into
        """
        self.filesystem = filesystem
        self.extensions = tuple(extensions)
        self.max_depth = max_depth
        self.skipped_directories = frozenset(skipped_directories)

    def scan_packages(self, packages: Sequence[Package]) -> list[ImportRecord]:
        imports: list[ImportRecord] = []
        for package in packages:
            imports.extend(self.scan_package(package))
        return imports

    def scan_package(self, package: Package) -> list[ImportRecord]:
        imports: list[ImportRecord] = []
        for source_file in self.find_source_files(package.directory):
            imports.extend(self.parse_file(source_file, package.name))
        return imports

    def find_source_files(self, directory: str, depth: int = 0) -> list[str]:
        """
        Source files under `directory`, in sorted traversal order.

        Args:
            directory: Directory to list
            depth: Current recursion depth

        Returns:
            Matching file paths; empty when the directory cannot be listed
        """
        if depth > self.max_depth:
            return []

        try:
            entries = self.filesystem.list_dir(directory)
        except FileSystemAccessError as e:
            logger.warning("source_directory_unreadable", directory=directory, error=str(e))
            return []

        files: list[str] = []
        for entry in sorted(entries, key=lambda e: e.name):
            if entry.is_dir:
                if entry.name in self.skipped_directories:
                    continue
                files.extend(self.find_source_files(entry.path, depth + 1))
            elif entry.is_file and has_extension(entry.name, self.extensions):
                files.append(entry.path)
        return files

    def parse_file(self, file_path: str, package_name: str) -> list[ImportRecord]:
        try:
            content = self.filesystem.read_text(file_path)
        except FileSystemAccessError as e:
            logger.warning("source_file_unreadable", file_path=file_path, error=str(e))
            return []

        imports: list[ImportRecord] = []
        for line_number, raw_line in enumerate(content.split("\n"), start=1):
            line = raw_line.strip()
            parsed = parse_import_line(line)
            if parsed is None:
                continue

            import_type, module = parsed
            imports.append(
                ImportRecord(
                    source_package=package_name,
                    imported_module=module,
                    import_type=import_type,
                    source_file=file_path,
                    line_number=line_number,
                    statement=line,
                )
            )
        return imports
