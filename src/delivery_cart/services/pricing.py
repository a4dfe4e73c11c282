"""Debounced pricing reconciliation with stale-response rejection."""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Protocol

from delivery_cart.domain.errors import PricingUnavailable, StaleResponseDiscarded
from delivery_cart.domain.pricing import PricingBreakdown, PricingRequest, PricingState

_logger = logging.getLogger(__name__)


class PricingClient(Protocol):
    """Interface for the remote pricing function."""

    async def calculate(self, request: PricingRequest) -> PricingBreakdown:
        """Return the authoritative breakdown for a request."""


@dataclass
class PricingReconciler:
    """Single writer of the displayed pricing breakdown.

    Bursts of ``schedule`` calls collapse into one request once the
    debounce window elapses. Each request carries a sequence number and
    only the response to the highest issued sequence is ever applied.
    """

    client: PricingClient
    debounce_seconds: float = 0.3
    diagnostics_size: int = 20

    def __post_init__(self) -> None:
        self._breakdown: PricingBreakdown | None = None
        self._fingerprint: PricingRequest | None = None
        self._error: str | None = None
        self._issued = 0
        self._timer: asyncio.TimerHandle | None = None
        self._in_flight: set[asyncio.Task[PricingBreakdown | None]] = set()
        self.discarded: deque[StaleResponseDiscarded] = deque(
            maxlen=self.diagnostics_size
        )

    @property
    def state(self) -> PricingState:
        return PricingState(
            breakdown=self._breakdown,
            fingerprint=self._fingerprint,
            busy=self.busy,
            error=self._error,
            last_sequence=self._issued,
        )

    @property
    def busy(self) -> bool:
        """True while a recalculation is scheduled or outstanding."""
        return self._timer is not None or bool(self._in_flight)

    def schedule(self, request: PricingRequest) -> None:
        """Recalculate after the debounce window, replacing any pending timer."""
        if self._timer is not None:
            self._timer.cancel()
        loop = asyncio.get_running_loop()
        self._timer = loop.call_later(self.debounce_seconds, self._fire, request)

    def cancel(self) -> None:
        """Drop the pending timer and forget in-flight requests."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._issued += 1
        for task in self._in_flight:
            task.cancel()

    async def recalculate(self, request: PricingRequest) -> PricingBreakdown | None:
        """Price a request now and apply the result if it is still the latest."""
        self._issued += 1
        sequence = self._issued
        if request.base_amount <= 0:
            self._breakdown = None
            self._fingerprint = request
            self._error = None
            return None

        try:
            breakdown = await self.client.calculate(request)
        except PricingUnavailable as exc:
            self._record_failure(sequence, exc.message)
            return self._breakdown
        except Exception as exc:
            self._record_failure(sequence, str(exc) or type(exc).__name__)
            return self._breakdown

        if sequence != self._issued:
            stale = StaleResponseDiscarded(sequence=sequence, latest_sequence=self._issued)
            self.discarded.append(stale)
            _logger.debug(
                "Discarded pricing response %s (latest %s)",
                stale.sequence,
                stale.latest_sequence,
            )
            return self._breakdown

        self._breakdown = breakdown
        self._fingerprint = request
        self._error = None
        return breakdown

    async def wait_until_settled(self) -> None:
        """Wait until no timer is pending and no request is in flight."""
        loop = asyncio.get_running_loop()
        while self.busy:
            if self._in_flight:
                await asyncio.wait(set(self._in_flight))
            elif self._timer is not None:
                await asyncio.sleep(max(0.0, self._timer.when() - loop.time()))
            await asyncio.sleep(0)

    def _fire(self, request: PricingRequest) -> None:
        self._timer = None
        task = asyncio.get_running_loop().create_task(self.recalculate(request))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)

    def _record_failure(self, sequence: int, message: str) -> None:
        if sequence != self._issued:
            _logger.debug("Ignored failure of superseded pricing request %s", sequence)
            return
        self._error = message
        _logger.warning("Pricing calculation failed: %s", message)
