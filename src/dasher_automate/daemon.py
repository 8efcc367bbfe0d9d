"""Device daemon - wires offer detection, the decision engine, the executor and the link."""

from __future__ import annotations

import asyncio
import logging
import signal

from dasher_automate.device.link import DeviceLink
from dasher_automate.device.state import STATUS_STOPPED, DeviceState
from dasher_automate.interfaces.executor import ActionExecutor
from dasher_automate.interfaces.source import OfferSource
from dasher_automate.models.config import AppConfig, BusyPolicy
from dasher_automate.models.messages import MessageType
from dasher_automate.models.offer import Offer, Verdict
from dasher_automate.policy.engine import evaluate

log = logging.getLogger(__name__)


class DeviceDaemon:
    """Runs the decision pipeline on the device.

    Each detected offer screen is handled in its own task so the caller that
    delivers UI notifications is never blocked. A lock guards the executor,
    which can only perform one UI action at a time; with ``busy_policy=drop``
    a screen that arrives while another is in flight is skipped instead.
    """

    def __init__(
        self,
        cfg: AppConfig,
        source: OfferSource,
        executor: ActionExecutor,
        link: DeviceLink | None = None,
    ) -> None:
        self._cfg = cfg
        self.source = source
        self.executor = executor

        if link is None:
            state = DeviceState(cfg.rules.with_enabled(cfg.device.start_enabled))
            link = DeviceLink(
                cfg.device.relay_url,
                cfg.device.device_id,
                state,
                reconnect_delay=cfg.device.reconnect_delay,
                ping_interval=cfg.device.ping_interval,
            )
        self.link = link
        self.state = link.state

        self._click_lock = asyncio.Lock()
        self._inflight: set[asyncio.Task] = set()
        self._emits: set[asyncio.Task] = set()
        self._running = False

        self.offers_handled = 0
        self.offers_dropped = 0

    # ── Lifecycle ─────────────────────────────────────────

    async def start(self) -> None:
        log.info("Starting device daemon")
        log.info("  Device: %s", self.link.device_id)
        log.info("  Relay:  %s", self.link.url)
        log.info("  Enabled: %s", self.state.enabled)
        self._running = True
        await self.link.start()

    async def stop(self) -> None:
        """Finish in-flight offers, report 'stopped' and close the link."""
        log.info("Stop requested")
        self._running = False
        if self._inflight:
            await asyncio.gather(*self._inflight, return_exceptions=True)
        if self._emits:
            await asyncio.gather(*self._emits, return_exceptions=True)
        await self.link.stop(final_status=STATUS_STOPPED)
        log.info("Device daemon shut down cleanly")

    # ── Offer pipeline ────────────────────────────────────

    def on_screen_changed(self) -> asyncio.Task | None:
        """UI callback: an offer screen may be showing. Returns immediately."""
        if not self.state.enabled:
            log.debug("Service disabled, ignoring offer screen")
            return None
        if self._inflight and self._cfg.device.busy_policy is BusyPolicy.DROP:
            self.offers_dropped += 1
            log.warning("Offer screen detected while another is in flight, dropped")
            return None

        task = asyncio.create_task(self.process_offer_screen())
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def process_offer_screen(self) -> Verdict | None:
        """Read the current offer, decide and act. Serialized on the click lock."""
        async with self._click_lock:
            # Re-read after waiting: a toggle may have landed meanwhile.
            rules = self.state.rules
            if not rules.enabled:
                return None

            offer = await self.source.extract_current_offer()
            if offer is None:
                return None

            self._emit(MessageType.OFFER_RECEIVED, offer=offer.to_dict())
            verdict = evaluate(offer, rules)
            log.info(
                "Offer from %r: pay=%s miles=%s -> %s (%s)",
                offer.store_name, verdict.pay, verdict.miles,
                verdict.decision.value, verdict.reason,
            )
            await self._perform(offer, verdict)
            self.offers_handled += 1
            return verdict

    async def evaluate_manual(self, offer: Offer, act: bool = False) -> Verdict:
        """Operator-triggered evaluation. Ignores the enabled flag."""
        verdict = evaluate(offer, self.state.rules)
        if act:
            async with self._click_lock:
                await self._perform(offer, verdict)
        return verdict

    async def _perform(self, offer: Offer, verdict: Verdict) -> bool:
        timeout = self._cfg.device.action_timeout
        try:
            success = await asyncio.wait_for(
                self.executor.perform(verdict), timeout if timeout > 0 else None,
            )
        except asyncio.TimeoutError:
            log.warning("%s action timed out after %.1fs", verdict.action_label, timeout)
            success = False
        except Exception as exc:
            log.error("Action executor failed: %s", exc, exc_info=True)
            success = False

        self._emit(
            MessageType.ACTION_TAKEN,
            action=verdict.action_label,
            offer=offer.to_dict(),
            reason=verdict.reason,
            success=bool(success),
        )
        return bool(success)

    def _emit(self, msg_type: MessageType, **payload) -> None:
        """Fire-and-forget event emission; the decision path never awaits it."""
        task = asyncio.create_task(self.link.emit(msg_type, **payload))
        self._emits.add(task)
        task.add_done_callback(self._emits.discard)


async def run_device(
    cfg: AppConfig,
    source: OfferSource,
    executor: ActionExecutor,
    poll_interval: float = 1.0,
) -> None:
    """Entry point: run a daemon that checks the source every ``poll_interval`` seconds."""
    daemon = DeviceDaemon(cfg, source, executor)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()
    try:
        while not stop.is_set():
            daemon.on_screen_changed()
            try:
                await asyncio.wait_for(stop.wait(), poll_interval)
            except asyncio.TimeoutError:
                pass
    finally:
        await daemon.stop()
