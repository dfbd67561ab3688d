"""Scan orchestrator service implementation."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Set, Tuple

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ...config.models import Config
from ...infrastructure.logging import LoggerMixin
from ...utils import CatalogTransientError, OrchestratorError, ShareUnavailableError
from ..interfaces import (
    ILibraryIndex,
    IMetadataResolver,
    IPathClassifier,
    IScanOrchestrator,
    IShareAccess,
)
from ..models import (
    MediaEntry,
    MediaGuess,
    ResolutionState,
    ScanError,
    ScanProgress,
    ScanResult,
    ScanState,
    ScanStatus,
    ShareFile,
)


@dataclass(frozen=True)
class ResolutionJob:
    """An entry queued for metadata resolution."""

    entry: MediaEntry
    guess: MediaGuess
    is_new: bool


@dataclass(frozen=True)
class ResolutionOutcome:
    """A resolved entry waiting for the index writer."""

    job: ResolutionJob
    entry: MediaEntry
    error: Optional[ScanError] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ScanOrchestrator(IScanOrchestrator, LoggerMixin):
    """Scan orchestrator service implementation.

    One cycle runs at a time and walks the state machine:
        idle -> scanning -> reconciling -> resolving -> idle

    - scanning: list every media file below the movies and TV folders
    - reconciling: classify files, diff them against the index, refresh moved,
      changed and restored entries, collect entries to resolve
    - resolving: a bounded pool of workers resolves metadata; a single writer
      applies every result to the index

    A share failure moves the machine to ``error`` and back to ``idle``
    without touching the index.
    """

    def __init__(
        self,
        config: Config,
        share: IShareAccess,
        classifier: IPathClassifier,
        resolver: IMetadataResolver,
        index: ILibraryIndex,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize scan orchestrator.

        Args:
            config: Application configuration.
            share: Share access collaborator.
            classifier: Path classifier.
            resolver: Metadata resolver.
            index: Library index.
            clock: Source of aware UTC timestamps.
        """
        self._config = config
        self._share = share
        self._classifier = classifier
        self._resolver = resolver
        self._index = index
        self._clock = clock or _utcnow
        self._state = ScanState.IDLE
        self._progress = ScanProgress()
        self._last_result: Optional[ScanResult] = None
        self._refresh_task: Optional["asyncio.Task[Optional[ScanResult]]"] = None

    @property
    def state(self) -> ScanState:
        """Current state of the scan state machine."""
        return self._state

    @property
    def last_result(self) -> Optional[ScanResult]:
        """Result of the most recent cycle."""
        return self._last_result

    async def trigger_scan(self, force: bool = False) -> Optional[ScanResult]:
        """Run one scan cycle.

        Args:
            force: Re-resolve entries that already have terminal metadata.

        Returns:
            Result of the cycle, or None if a cycle was already running.

        Raises:
            OrchestratorError: If the cycle failed unexpectedly.
        """
        if self._state != ScanState.IDLE:
            self.logger.info(f"Scan trigger ignored, orchestrator is {self._state.value}")
            return None

        self._progress = ScanProgress()
        self._set_state(ScanState.SCANNING)
        result = ScanResult(started_at=self._clock(), forced=force)

        try:
            await self._run_cycle(result, force)
        except ShareUnavailableError as e:
            self._set_state(ScanState.ERROR)
            result.fatal_error = str(e)
            self.logger.error(f"Scan aborted, share unavailable: {e}")
        except Exception as e:
            self._set_state(ScanState.ERROR)
            error_msg = f"Scan cycle failed: {e}"
            self.logger.error(error_msg)
            raise OrchestratorError(error_msg) from e
        finally:
            result.finished_at = self._clock()
            self._last_result = result
            self._set_state(ScanState.IDLE)

        if result.fatal_error is None:
            self.logger.info(
                f"Scan finished in {result.duration_seconds:.1f}s: "
                f"{len(result.added)} added, {len(result.updated)} updated, "
                f"{len(result.removed)} removed, {len(result.errors)} errors"
            )
        return result

    def request_refresh(self, force: bool = False) -> bool:
        """Start a scan cycle in the background.

        Must be called from a running event loop.

        Args:
            force: Re-resolve entries that already have terminal metadata.

        Returns:
            True if a cycle was started, False if one is already running.
        """
        if self._state != ScanState.IDLE or (
            self._refresh_task is not None and not self._refresh_task.done()
        ):
            return False

        self._refresh_task = asyncio.get_running_loop().create_task(self._background_scan(force))
        return True

    async def wait_for_refresh(self) -> Optional[ScanResult]:
        """Wait for the background cycle started by ``request_refresh``."""
        if self._refresh_task is None:
            return None
        return await self._refresh_task

    async def run_periodic(
        self,
        stop_event: Optional[asyncio.Event] = None,
        interval_seconds: Optional[float] = None,
    ) -> None:
        """Scan every configured interval until stopped.

        Args:
            stop_event: Event that ends the loop when set.
            interval_seconds: Override of ``scanner.scan_interval_minutes``.
        """
        stop_event = stop_event or asyncio.Event()
        if interval_seconds is None:
            interval_seconds = self._config.scanner.scan_interval_minutes * 60.0

        while not stop_event.is_set():
            try:
                await self.trigger_scan()
            except OrchestratorError as e:
                self.logger.error(f"Periodic scan failed, retrying next interval: {e}")

            if interval_seconds <= 0:
                return
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                continue

    def status(self) -> ScanStatus:
        """Snapshot of state, progress and last result."""
        return ScanStatus(
            state=self._state,
            progress=self._progress.model_copy(),
            last_result=self._last_result,
        )

    async def _background_scan(self, force: bool) -> Optional[ScanResult]:
        try:
            return await self.trigger_scan(force=force)
        except OrchestratorError as e:
            self.logger.error(f"Background scan failed: {e}")
            return None

    async def _run_cycle(self, result: ScanResult, force: bool) -> None:
        """Run the phases of one cycle, filling in the result."""
        self._resolver.clear_cache()

        files = await self._list_share()

        self._set_state(ScanState.RECONCILING)
        jobs, missing = self._reconcile(files, force, result)

        self._set_state(ScanState.RESOLVING)
        await self._resolve_all(jobs, result)

        retention = self._config.scanner.tombstone_retention_scans
        self._index.expire_tombstones(retention)
        result.removed = self._index.mark_removed(missing)

        await self._save_index(result)

    async def _list_share(self) -> List[ShareFile]:
        """List media files of every scan root.

        Raises:
            ShareUnavailableError: If the share cannot be listed.
        """
        files: List[ShareFile] = []
        for root in self._config.scan_roots:
            if not await self._share.exists(root):
                self.logger.warning(f"Share folder '{root}' does not exist, skipping")
                continue
            async for share_file in self._share.list_files(root):
                files.append(share_file)
                self._progress.discovered += 1
                self._progress.current_item = share_file.path
        return files

    def _reconcile(
        self, files: List[ShareFile], force: bool, result: ScanResult
    ) -> Tuple[List[ResolutionJob], List[str]]:
        """Diff listed files against the index.

        Returns:
            Tuple of (entries to resolve, ids whose files vanished).
        """
        now = self._clock()
        seen: Set[str] = set()
        jobs: List[ResolutionJob] = []

        for share_file in files:
            guess = self._classifier.classify(share_file.directory, share_file.filename)
            entry_id = guess.entry_id
            if entry_id in seen:
                self.logger.warning(
                    f"Ignoring {share_file.path}: same media as an earlier file ({entry_id})"
                )
                continue
            seen.add(entry_id)
            self._progress.current_item = share_file.path

            # A future mtime must not keep an entry stale forever
            scanned_at = max(now, share_file.mod_time)
            existing = self._index.get(entry_id, include_removed=True)

            if existing is None:
                entry = MediaEntry.from_guess(
                    guess,
                    source_path=share_file.path,
                    scanned_at=scanned_at,
                    file_size=share_file.size,
                    file_mod_time=share_file.mod_time,
                )
                jobs.append(ResolutionJob(self._index.upsert(entry), guess, is_new=True))
                continue

            moved = existing.source_path != share_file.path
            restored = existing.tombstoned
            stale = self._index.is_stale(existing, share_file.mod_time)
            if not (moved or restored or stale or force):
                continue

            refreshed = existing.model_copy(
                update={
                    "source_path": share_file.path,
                    "file_size": share_file.size,
                    "file_mod_time": share_file.mod_time,
                    "last_scanned_at": scanned_at,
                    "tombstoned": False,
                }
            )
            if force or existing.resolution_state.needs_resolution:
                jobs.append(ResolutionJob(self._index.upsert(refreshed), guess, is_new=restored))
            else:
                stored = self._index.upsert(refreshed)
                (result.added if restored else result.updated).append(stored)

        missing = [entry.id for entry in self._index.entries() if entry.id not in seen]
        self._progress.to_resolve = len(jobs)
        self.logger.debug(
            f"Reconciled {len(files)} files: {len(jobs)} to resolve, {len(missing)} missing"
        )
        return jobs, missing

    async def _resolve_all(self, jobs: List[ResolutionJob], result: ScanResult) -> None:
        """Resolve entries with a bounded worker pool and a single index writer."""
        if not jobs:
            return

        pending: "asyncio.Queue[ResolutionJob]" = asyncio.Queue()
        for job in jobs:
            pending.put_nowait(job)
        outcomes: "asyncio.Queue[Optional[ResolutionOutcome]]" = asyncio.Queue()

        writer = asyncio.create_task(self._write_outcomes(outcomes, result))
        pool_size = min(self._config.scanner.resolver_concurrency, len(jobs))
        workers = [
            asyncio.create_task(self._resolve_worker(pending, outcomes)) for _ in range(pool_size)
        ]

        try:
            await asyncio.gather(*workers)
        finally:
            for worker in workers:
                worker.cancel()
            await outcomes.put(None)
            await writer

    async def _resolve_worker(
        self,
        pending: "asyncio.Queue[ResolutionJob]",
        outcomes: "asyncio.Queue[Optional[ResolutionOutcome]]",
    ) -> None:
        while True:
            try:
                job = pending.get_nowait()
            except asyncio.QueueEmpty:
                return
            outcome = await self._resolve_job(job)
            await outcomes.put(outcome)

    async def _write_outcomes(
        self,
        outcomes: "asyncio.Queue[Optional[ResolutionOutcome]]",
        result: ScanResult,
    ) -> None:
        """Apply resolution outcomes to the index one at a time."""
        while True:
            outcome = await outcomes.get()
            if outcome is None:
                return

            stored = self._index.upsert(outcome.entry)
            (result.added if outcome.job.is_new else result.updated).append(stored)
            if outcome.error is not None:
                result.errors.append(outcome.error)

            self._progress.resolved += 1
            self._progress.current_item = stored.source_path

    async def _resolve_job(self, job: ResolutionJob) -> ResolutionOutcome:
        """Resolve one entry, isolating its failures.

        Args:
            job: Entry to resolve.

        Returns:
            Outcome holding the updated entry and any error.
        """
        entry = job.entry
        try:
            metadata = await self._retrying()(self._resolver.resolve, job.guess)
        except CatalogTransientError as e:
            attempts = self._config.resolver.retry.max_attempts
            reason = f"catalog unavailable after {attempts} attempts: {e}"
            return self._failed(job, reason)
        except Exception as e:
            return self._failed(job, f"metadata resolution failed: {e}")

        resolved_at = self._clock()
        if metadata is None and entry.resolution_state == ResolutionState.RESOLVED:
            self.logger.info(
                f"No metadata for {entry.source_path} on re-resolution, keeping previous match"
            )
            updated = entry.model_copy(
                update={"last_resolved_at": resolved_at, "last_error": None}
            )
        elif metadata is None:
            self.logger.debug(f"No metadata for {entry.source_path}")
            updated = entry.model_copy(
                update={
                    "resolution_state": ResolutionState.NOT_FOUND,
                    "last_resolved_at": resolved_at,
                    "last_error": None,
                }
            )
        else:
            updated = entry.model_copy(
                update={
                    "resolution_state": ResolutionState.RESOLVED,
                    "poster_url": metadata.poster_url,
                    "synopsis": metadata.synopsis,
                    "backdrop_url": metadata.backdrop_url,
                    "genres": metadata.genres,
                    "rating": metadata.rating,
                    "canonical_title": metadata.canonical_title,
                    "external_id": metadata.external_id,
                    "last_resolved_at": resolved_at,
                    "last_error": None,
                }
            )
        return ResolutionOutcome(job, updated)

    def _failed(self, job: ResolutionJob, reason: str) -> ResolutionOutcome:
        """Outcome of a resolution that gave up.

        Entries that already had metadata keep it and only record the error.
        """
        entry = job.entry
        self.logger.warning(f"Resolution failed for {entry.source_path}: {reason}")
        update = {"last_resolved_at": self._clock(), "last_error": reason}
        if entry.resolution_state != ResolutionState.RESOLVED:
            update["resolution_state"] = ResolutionState.FAILED
        return ResolutionOutcome(
            job,
            entry.model_copy(update=update),
            ScanError(path=entry.source_path, reason=reason),
        )

    def _retrying(self) -> AsyncRetrying:
        """Retry policy for transient catalog failures, one instance per call."""
        retry = self._config.resolver.retry
        return AsyncRetrying(
            stop=stop_after_attempt(retry.max_attempts),
            wait=wait_exponential(multiplier=retry.base_delay_ms / 1000.0, exp_base=retry.factor),
            retry=retry_if_exception_type(CatalogTransientError),
            before_sleep=before_sleep_log(self.logger, logging.WARNING),
            reraise=True,
        )

    async def _save_index(self, result: ScanResult) -> None:
        """Persist the index, reporting failures as scan errors."""
        try:
            await self._index.save()
        except OSError as e:
            index_path = str(self._config.library.index_path)
            self.logger.error(f"Failed to save library index to {index_path}: {e}")
            result.errors.append(ScanError(path=index_path, reason=f"index not saved: {e}"))

    def _set_state(self, state: ScanState) -> None:
        if state != self._state:
            self.logger.debug(f"Scan state {self._state.value} -> {state.value}")
        self._state = state
        self._progress.phase = state
