from __future__ import annotations

from pathlib import Path
from typing import Protocol

_IGNORED_DIR_NAMES = frozenset({"node_modules"})


class FileSystem(Protocol):
    def glob_dirs(self, root: Path, pattern: str) -> list[Path]: ...

    def is_file(self, path: Path) -> bool: ...

    def read_text(self, path: Path) -> str: ...


class LocalFileSystem:
    def glob_dirs(self, root: Path, pattern: str) -> list[Path]:
        out: list[Path] = []
        for candidate in sorted(root.glob(pattern)):
            if not candidate.is_dir():
                continue
            rel_parts = candidate.relative_to(root).parts
            if any(part in _IGNORED_DIR_NAMES for part in rel_parts):
                continue
            out.append(candidate)
        return out

    def is_file(self, path: Path) -> bool:
        return path.is_file()

    def read_text(self, path: Path) -> str:
        return path.read_text(encoding="utf-8")
