"""Scan orchestrator interface."""

import asyncio
from abc import ABC, abstractmethod
from typing import Optional

from ..models import ScanResult, ScanState, ScanStatus


class IScanOrchestrator(ABC):
    """Interface for scan cycle orchestration."""

    @property
    @abstractmethod
    def state(self) -> ScanState:
        """Current state of the scan state machine."""
        pass

    @abstractmethod
    async def trigger_scan(self, force: bool = False) -> Optional[ScanResult]:
        """Run one scan cycle.

        Args:
            force: Re-resolve entries that already have terminal metadata.

        Returns:
            Result of the cycle, or None if a cycle was already running.
        """
        pass

    @abstractmethod
    def request_refresh(self, force: bool = False) -> bool:
        """Start a scan cycle in the background.

        Args:
            force: Re-resolve entries that already have terminal metadata.

        Returns:
            True if a cycle was started, False if one is already running.
        """
        pass

    @abstractmethod
    async def run_periodic(
        self,
        stop_event: Optional[asyncio.Event] = None,
        interval_seconds: Optional[float] = None,
    ) -> None:
        """Scan every configured interval until stopped.

        Args:
            stop_event: Event that ends the loop when set.
            interval_seconds: Override of the configured scan interval.
        """
        pass

    @abstractmethod
    def status(self) -> ScanStatus:
        """Snapshot of state, progress and last result."""
        pass
