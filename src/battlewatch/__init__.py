"""battlewatch core package.

Watches the Eternum battle feed and alerts subscribed players on Telegram
when one of their realms or structures comes under attack.

- **feed**: Async GraphQL client and response models for the Torii indexer
- **poller**: Snapshot polling and deduplication of battle-start events
- **enricher**: Realm name and owner lookup for Realm battles
- **formatting**: Notification text and diagnostic log blocks
- **recipients**: Subscriber resolution by defender / owner display name
- **notifications**: Delivery channels and the per-recipient dispatcher
- **monitor**: Cycle orchestration and the non-overlapping scheduler

The main entry point is ``python -m battlewatch.cli run``.
"""

from .monitor import BattleMonitor, PollScheduler, build_monitor
from .version import __version__

__all__ = [
    "__version__",
    "BattleMonitor",
    "PollScheduler",
    "build_monitor",
]
