"""Battle monitor orchestration.

``BattleMonitor`` runs one detection-and-notification cycle: poll the feed,
skip battles already handled, enrich Realm battles, resolve subscribers and
dispatch. ``PollScheduler`` repeats cycles on a fixed interval and never
lets two cycles overlap.
"""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
import signal
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .enricher import RealmEnricher
from .errors import FeedError
from .feed.client import FeedClient
from .formatting import battle_details_block, format_battle_message
from .logging_utils import LogBlockBuilder
from .models import BattleEvent, NotificationMessage
from .notifications.dispatcher import Dispatcher
from .notifications.telegram import TelegramChannel
from .notifications.types import DispatchReport, NotificationChannel, SendOptions
from .persistence.seen_store import SeenBattleStore
from .persistence.subscriber_store import SubscriberDirectory
from .poller import EventPoller
from .recipients import RecipientResolver

if TYPE_CHECKING:  # pragma: no cover
    from .config import Settings

LOGGER = logging.getLogger(__name__)


@dataclass
class CycleReport:
    polled: int = 0
    new_battles: list[str] = field(default_factory=list)
    delivered: int = 0
    failed: int = 0
    removed: list[str] = field(default_factory=list)

    def add(self, dispatch: DispatchReport) -> None:
        self.delivered += len(dispatch.delivered)
        self.failed += len(dispatch.failed)
        self.removed.extend(dispatch.removed)

    def render(self) -> str:
        builder = LogBlockBuilder("Poll cycle summary")
        builder.add_fields(
            [
                ("Open battles", self.polled),
                ("New battles", len(self.new_battles)),
                ("Delivered", self.delivered),
                ("Failed", self.failed),
            ]
        )
        builder.add_section("Unsubscribed", self.removed)
        return builder.render()


class BattleMonitor:
    """Runs the detection-and-notification pipeline once per call to ``run_cycle``."""

    def __init__(
        self,
        poller: EventPoller,
        enricher: RealmEnricher,
        resolver: RecipientResolver,
        dispatcher: Dispatcher,
        *,
        tz: dt.tzinfo | None = None,
        rich_formatting: bool = True,
    ) -> None:
        self.poller = poller
        self.enricher = enricher
        self.resolver = resolver
        self.dispatcher = dispatcher
        self._tz = tz
        self._rich_formatting = rich_formatting

    async def run_cycle(self) -> CycleReport:
        """Poll once and notify every battle seen for the first time.

        Raises:
            FeedError: If the battle listing could not be fetched; nothing is
                marked as seen in that case.
        """
        polled = await self.poller.poll()
        report = CycleReport(polled=len(polled))

        for item in polled:
            if not item.is_new:
                continue
            report.new_battles.append(item.event.battle_id)
            try:
                dispatch = await self.handle_new_battle(item.event)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Failed to handle battle %s", item.event.battle_id)
                continue
            report.add(dispatch)

        if report.new_battles:
            LOGGER.info(report.render())
        return report

    async def handle_new_battle(self, event: BattleEvent) -> DispatchReport:
        realm = await self.enricher.enrich(event)

        LOGGER.info(format_battle_message(event, realm, tz=self._tz))
        LOGGER.debug(battle_details_block(event, realm, tz=self._tz))

        recipients = await self.resolver.resolve(
            event.defender.name,
            realm.owner_name if realm is not None else None,
        )
        text = format_battle_message(event, realm, tz=self._tz, html=self._rich_formatting)
        message = NotificationMessage.build(event.battle_id, text, recipients)
        return await self.dispatcher.dispatch(message)


class PollScheduler:
    """Repeats a cycle every ``interval_seconds`` without ever overlapping two cycles.

    The next wait only starts once the previous cycle has completed, and a
    ``tick`` issued while a cycle is still running is skipped. No cycle
    failure stops the loop.
    """

    def __init__(self, cycle: Callable[[], Awaitable[object]], interval_seconds: float) -> None:
        self._cycle = cycle
        self._interval = interval_seconds
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()

    @property
    def running_cycle(self) -> bool:
        return self._lock.locked()

    def stop(self) -> None:
        """Stop arming new ticks; a cycle already in flight is allowed to finish."""
        if not self._stop.is_set():
            LOGGER.info("Stopping battle monitor")
        self._stop.set()

    async def tick(self) -> bool:
        """Run one cycle unless one is already in flight. Returns whether it ran."""
        if self._lock.locked():
            LOGGER.debug("Previous poll cycle still running; skipping this tick")
            return False
        async with self._lock:
            try:
                await self._cycle()
            except FeedError as exc:
                LOGGER.warning("Poll cycle abandoned, will retry next tick: %s", exc)
            except Exception:  # noqa: BLE001
                LOGGER.exception("Poll cycle failed unexpectedly")
        return True

    async def run_forever(self) -> None:
        LOGGER.info("Starting battle monitoring (interval %.1fs)", self._interval)
        while not self._stop.is_set():
            await self.tick()
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self._interval)
            except asyncio.TimeoutError:
                pass


@dataclass
class MonitorResources:
    monitor: BattleMonitor
    feed: FeedClient
    channel: NotificationChannel
    directory: SubscriberDirectory

    async def aclose(self) -> None:
        await self.channel.aclose()
        await self.feed.aclose()
        self.directory.close()


def build_monitor(
    settings: Settings,
    *,
    feed: FeedClient | None = None,
    channel: NotificationChannel | None = None,
    directory: SubscriberDirectory | None = None,
) -> MonitorResources:
    """Wire the pipeline from settings; collaborators can be injected."""
    feed = feed or FeedClient(
        settings.feed.url,
        timeout=settings.feed.timeout,
        max_retries=settings.feed.max_retries,
    )
    channel = channel or TelegramChannel(
        settings.telegram.bot_token,
        api_base=settings.telegram.api_base,
        timeout=settings.telegram.timeout,
    )
    directory = directory or SubscriberDirectory.open(settings.directory.path)

    poller = EventPoller(feed, SeenBattleStore(ttl_seconds=settings.poller.seen_ttl_seconds))
    dispatcher = Dispatcher(
        channel,
        directory,
        options=SendOptions(
            rich_formatting=settings.telegram.rich_formatting,
            suppress_link_preview=settings.telegram.suppress_link_preview,
        ),
        permanent_markers=settings.delivery.permanent_markers,
    )
    monitor = BattleMonitor(
        poller,
        RealmEnricher(feed),
        RecipientResolver(directory),
        dispatcher,
        tz=settings.render.tzinfo(),
        rich_formatting=settings.telegram.rich_formatting,
    )
    return MonitorResources(monitor=monitor, feed=feed, channel=channel, directory=directory)


async def run_monitor(settings: Settings, *, once: bool = False) -> int:
    """Run the monitor until interrupted (or for a single cycle with ``once``)."""
    resources = build_monitor(settings)
    if not resources.channel.enabled():
        LOGGER.warning("Notification channel %s is not configured; battles will only be logged", resources.channel.name)
    try:
        if once:
            try:
                await resources.monitor.run_cycle()
            except FeedError as exc:
                LOGGER.error("Poll failed: %s", exc)
                return 2
            return 0

        scheduler = PollScheduler(resources.monitor.run_cycle, settings.poller.interval_seconds)
        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(signum, scheduler.stop)
            except (NotImplementedError, RuntimeError):  # pragma: no cover - non-POSIX event loops
                pass
        await scheduler.run_forever()
        return 0
    finally:
        await resources.aclose()
