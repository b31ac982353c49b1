"""Run-scoped state shared by the resolvers and the route collector.

A ResolutionSession is built fresh for every generation run and dropped
afterwards. Every cache here is write-once per key: the source tree is not
expected to change while a run is in progress.
"""

import logging
import os
from pathlib import Path

from ..parser.nodes import SourceFile
from ..parser.syntax import SourceSyntaxError, parse_source
from .model import Schema, SchemaKind

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".ts", ".tsx")
SKIPPED_DIRS = {"node_modules"}


class ResolutionSession:
    def __init__(self):
        self.schemas: dict[str, Schema] = {}
        self.in_progress: set[str] = set()
        self.cycle_hits: set[str] = set()
        self._listings: dict[Path, list[Path]] = {}
        self._stats: dict[Path, tuple[int, int] | None] = {}
        self._sources: dict[tuple[Path, tuple[int, int]], SourceFile | None] = {}

    # --- schema cache -------------------------------------------------------

    def register(self, name: str, schema: Schema) -> Schema:
        """Store a named definition; the first registration of a name wins."""
        return self.schemas.setdefault(name, schema)

    def deref(self, schema: Schema | None) -> Schema | None:
        """Follow references through the cache; None when one cannot be followed."""
        seen = set()
        while schema is not None and schema.kind == SchemaKind.REFERENCE:
            if schema.ref in seen:
                return None
            seen.add(schema.ref)
            schema = self.schemas.get(schema.ref)
        return schema

    def name_of(self, schema: Schema | None) -> str | None:
        """Registered name of a cached definition, compared by identity."""
        if schema is None:
            return None
        for name, definition in self.schemas.items():
            if definition is schema:
                return name
        return None

    # --- file system --------------------------------------------------------

    def walk(self, root: Path) -> list[Path]:
        """Source files under ``root``, depth-first in sorted order."""
        files = []
        for entry in self._listing(Path(root)):
            if entry.is_dir():
                files.extend(self.walk(entry))
            elif entry.suffix in SOURCE_SUFFIXES:
                files.append(entry)
        return files

    def _listing(self, directory: Path) -> list[Path]:
        if directory not in self._listings:
            try:
                entries = sorted(directory.iterdir(), key=lambda p: p.name)
            except OSError as exc:
                logger.debug("Cannot list %s: %s", directory, exc)
                entries = []
            self._listings[directory] = [
                entry
                for entry in entries
                if not entry.name.startswith(".") and entry.name not in SKIPPED_DIRS
            ]
        return self._listings[directory]

    def stat(self, path: Path) -> tuple[int, int] | None:
        if path not in self._stats:
            try:
                info = os.stat(path)
                self._stats[path] = (info.st_mtime_ns, info.st_size)
            except OSError:
                self._stats[path] = None
        return self._stats[path]

    def source(self, path: Path) -> SourceFile | None:
        """Parsed form of a source file; None when it cannot be read or parsed."""
        stat = self.stat(path)
        if stat is None:
            return None
        key = (path, stat)
        if key not in self._sources:
            try:
                text = path.read_text(encoding="utf-8")
                self._sources[key] = parse_source(text, path)
            except (OSError, UnicodeDecodeError, SourceSyntaxError) as exc:
                logger.error("Skipping %s: %s", path, exc)
                self._sources[key] = None
        return self._sources[key]
