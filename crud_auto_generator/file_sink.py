"""
Destinations for generated files.

Generators never touch the filesystem directly; they go through a
FileSink so that dry runs and tests can capture output in memory.
"""

import logging
from pathlib import Path
from typing import Dict, List, Protocol, Set, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class FileSink(Protocol):
    """Where generated files go. Paths are relative to the sink's root."""

    def exists(self, path: str) -> bool: ...

    def write(self, path: str, content: str) -> None: ...

    def make_directory(self, path: str) -> None: ...

    def read(self, path: str) -> str: ...


class LocalFileSink:
    """Writes files below ``base_path`` on the local filesystem."""

    def __init__(self, base_path: str):
        self.base_path = Path(base_path)

    def _resolve(self, path: str) -> Path:
        return self.base_path / path

    def exists(self, path: str) -> bool:
        return self._resolve(path).exists()

    def write(self, path: str, content: str) -> None:
        target = self._resolve(path)
        # Ensure the parent directory exists
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as f:
            f.write(content)
        logger.debug(f"Generated file: {target}")

    def make_directory(self, path: str) -> None:
        self._resolve(path).mkdir(parents=True, exist_ok=True)

    def read(self, path: str) -> str:
        with open(self._resolve(path), "r", encoding="utf-8") as f:
            return f.read()


class MemoryFileSink:
    """Keeps files in a dictionary. Used by tests and dry-run previews."""

    def __init__(self):
        self.files: Dict[str, str] = {}
        self.directories: Set[str] = set()

    def exists(self, path: str) -> bool:
        return path in self.files or path in self.directories

    def write(self, path: str, content: str) -> None:
        self.files[path] = content
        parent = str(Path(path).parent)
        if parent != ".":
            self.directories.add(parent)

    def make_directory(self, path: str) -> None:
        self.directories.add(path)

    def read(self, path: str) -> str:
        if path not in self.files:
            raise FileNotFoundError(path)
        return self.files[path]

    def paths(self) -> List[str]:
        return sorted(self.files)
