"""Library index service implementation."""

import os
from collections import Counter
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import aiofiles
from pydantic import ValidationError

from ...config.models import Config
from ...infrastructure.logging import LoggerMixin
from ...utils import IndexCorruptionError, identity_key
from ..interfaces import ILibraryIndex
from ..models import MediaEntry, MediaKind, ResolutionState, SeriesSummary

# Fields describing catalog metadata, kept when a merge must not regress them
METADATA_FIELDS = (
    "resolution_state",
    "poster_url",
    "synopsis",
    "backdrop_url",
    "genres",
    "rating",
    "canonical_title",
    "external_id",
    "last_resolved_at",
    "last_error",
)

# Artwork and descriptive fields a merge never blanks once known
NEVER_BLANKED_FIELDS = ("poster_url", "backdrop_url", "genres", "rating")


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LibraryIndex(ILibraryIndex, LoggerMixin):
    """In-memory index of media entries with optional JSON lines persistence.

    Entries are immutable and only ever replaced whole, so readers can take
    snapshots without locking. All writes go through ``upsert``,
    ``mark_removed`` and ``expire_tombstones``.
    """

    def __init__(self, config: Config) -> None:
        """Initialize library index.

        Args:
            config: Application configuration.
        """
        self._config = config
        self._index_path: Optional[Path] = config.library.index_path
        self._entries: Dict[str, MediaEntry] = {}
        self._tombstone_age: Dict[str, int] = {}

    def __len__(self) -> int:
        return sum(1 for entry in list(self._entries.values()) if not entry.tombstoned)

    def upsert(self, entry: MediaEntry) -> MediaEntry:
        """Insert or merge an entry.

        A merge never turns terminal metadata back into ``unresolved`` and
        never replaces a poster with nothing.

        Args:
            entry: Entry to store.

        Returns:
            The entry as stored after merging.
        """
        existing = self._entries.get(entry.id)
        stored = entry if existing is None else self._merge(existing, entry)
        self._entries[stored.id] = stored
        if not stored.tombstoned:
            self._tombstone_age.pop(stored.id, None)
        return stored

    def get(self, entry_id: str, include_removed: bool = False) -> Optional[MediaEntry]:
        """Get an entry by id.

        Args:
            entry_id: Entry identifier.
            include_removed: Also return tombstoned entries.

        Returns:
            The entry or None.
        """
        entry = self._entries.get(entry_id)
        if entry is None or (entry.tombstoned and not include_removed):
            return None
        return entry

    def entries(self, include_removed: bool = False) -> List[MediaEntry]:
        """Snapshot of all entries."""
        snapshot = list(self._entries.values())
        if include_removed:
            return snapshot
        return [entry for entry in snapshot if not entry.tombstoned]

    def list_by_kind(self, kind: MediaKind) -> List[MediaEntry]:
        """List visible entries of one kind ordered by title, year, season, episode.

        Args:
            kind: Media kind.

        Returns:
            Snapshot list of entries.
        """
        return sorted(
            (entry for entry in self.entries() if entry.kind == kind),
            key=lambda entry: entry.sort_key,
        )

    def find_by_source_path(self, source_path: str) -> Optional[MediaEntry]:
        """Find the entry backed by a share path, tombstoned ones included."""
        for entry in self.entries(include_removed=True):
            if entry.source_path == source_path:
                return entry
        return None

    def tombstoned_ids(self) -> List[str]:
        """Identifiers of tombstoned entries."""
        return [entry.id for entry in self.entries(include_removed=True) if entry.tombstoned]

    def mark_removed(self, entry_ids: Iterable[str]) -> List[str]:
        """Tombstone entries whose files vanished.

        Args:
            entry_ids: Identifiers to tombstone.

        Returns:
            Identifiers that were actually tombstoned.
        """
        removed = []
        for entry_id in entry_ids:
            entry = self._entries.get(entry_id)
            if entry is None or entry.tombstoned:
                continue
            self._entries[entry_id] = entry.model_copy(update={"tombstoned": True})
            self._tombstone_age[entry_id] = 0
            removed.append(entry_id)

        if removed:
            self.logger.info(f"Tombstoned {len(removed)} entries")
        return removed

    def expire_tombstones(self, retention_scans: int) -> List[str]:
        """Age tombstones by one cycle and purge the expired ones.

        Args:
            retention_scans: Cycles a tombstone survives.

        Returns:
            Identifiers purged from the index.
        """
        purged = []
        for entry_id in self.tombstoned_ids():
            age = self._tombstone_age.get(entry_id, 0) + 1
            if age >= retention_scans:
                del self._entries[entry_id]
                self._tombstone_age.pop(entry_id, None)
                purged.append(entry_id)
            else:
                self._tombstone_age[entry_id] = age

        if purged:
            self.logger.info(f"Purged {len(purged)} expired tombstones")
        return purged

    def is_stale(self, entry: MediaEntry, file_mod_time: datetime) -> bool:
        """Check whether an entry needs processing.

        Args:
            entry: Indexed entry.
            file_mod_time: Current modification time of its file.

        Returns:
            True if the file changed since the last scan or metadata is missing.
        """
        if entry.resolution_state.needs_resolution:
            return True
        return _as_utc(file_mod_time) > _as_utc(entry.last_scanned_at)

    def search(self, term: str) -> List[MediaEntry]:
        """Find visible entries whose title or path contains a term."""
        needle = term.strip().casefold()
        if not needle:
            return []
        matches = [
            entry
            for entry in self.entries()
            if needle in entry.display_title.casefold()
            or needle in entry.title.casefold()
            or needle in entry.source_path.casefold()
        ]
        return sorted(matches, key=lambda entry: entry.sort_key)

    def list_series(self) -> List[SeriesSummary]:
        """Group visible episodes by series."""
        groups: Dict[str, List[MediaEntry]] = {}
        for entry in self.list_by_kind(MediaKind.EPISODE):
            groups.setdefault(identity_key(entry.title), []).append(entry)

        summaries = []
        for episodes in groups.values():
            episodes.sort(key=lambda e: (e.season or 0, e.episode or 0))
            with_poster = next((e for e in episodes if e.poster_url), None)
            summaries.append(
                SeriesSummary(
                    title=episodes[0].display_title,
                    poster_url=with_poster.poster_url if with_poster else None,
                    synopsis=next((e.synopsis for e in episodes if e.synopsis), None),
                    seasons=sorted({e.season for e in episodes if e.season is not None}),
                    episode_count=len(episodes),
                    episode_ids=[e.id for e in episodes],
                )
            )
        return sorted(summaries, key=lambda s: s.title.casefold())

    def stats(self) -> Dict[str, int]:
        """Entry counts per kind and resolution state."""
        snapshot = self.entries(include_removed=True)
        visible = [entry for entry in snapshot if not entry.tombstoned]
        counts: Dict[str, int] = {"total": len(visible), "tombstoned": len(snapshot) - len(visible)}
        kinds = Counter(entry.kind.value for entry in visible)
        states = Counter(entry.resolution_state.value for entry in visible)
        for kind in MediaKind:
            counts[kind.value] = kinds.get(kind.value, 0)
        for state in ResolutionState:
            counts[state.value] = states.get(state.value, 0)
        return counts

    async def load(self) -> int:
        """Load persisted entries, dropping unreadable records.

        Returns:
            Number of entries loaded.
        """
        if self._index_path is None or not self._index_path.exists():
            return 0

        loaded: Dict[str, MediaEntry] = {}
        dropped = 0
        line_number = 0
        async with aiofiles.open(self._index_path, "r", encoding="utf-8") as f:
            async for line in f:
                line_number += 1
                if not line.strip():
                    continue
                try:
                    entry = self._decode_record(line)
                except IndexCorruptionError as e:
                    dropped += 1
                    self.logger.warning(f"Dropping record {line_number} of {self._index_path}: {e}")
                    continue
                loaded[entry.id] = entry

        self._entries = loaded
        self._tombstone_age = {entry_id: 0 for entry_id in self.tombstoned_ids()}
        self.logger.info(
            f"Loaded {len(loaded)} entries from {self._index_path}"
            + (f" ({dropped} unreadable records dropped)" if dropped else "")
        )
        return len(loaded)

    async def save(self) -> None:
        """Persist all entries atomically."""
        if self._index_path is None:
            return

        self._index_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._index_path.with_name(self._index_path.name + ".tmp")
        snapshot = sorted(self.entries(include_removed=True), key=lambda entry: entry.id)

        async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
            await f.write("".join(entry.model_dump_json() + "\n" for entry in snapshot))
        os.replace(tmp_path, self._index_path)

        self.logger.debug(f"Saved {len(snapshot)} entries to {self._index_path}")

    @staticmethod
    def _decode_record(line: str) -> MediaEntry:
        """Decode one persisted record."""
        try:
            return MediaEntry.model_validate_json(line)
        except ValidationError as e:
            raise IndexCorruptionError(
                f"invalid record: {e.error_count()} validation errors"
            ) from e

    @staticmethod
    def _merge(existing: MediaEntry, incoming: MediaEntry) -> MediaEntry:
        """Merge an incoming entry over the stored one."""
        update = {}
        if (
            incoming.resolution_state == ResolutionState.UNRESOLVED
            and existing.resolution_state != ResolutionState.UNRESOLVED
        ):
            update = {field: getattr(existing, field) for field in METADATA_FIELDS}

        for field in NEVER_BLANKED_FIELDS:
            known = getattr(existing, field)
            if known and not update.get(field, getattr(incoming, field)):
                update[field] = known

        if not update:
            return incoming
        return incoming.model_copy(update=update)
