"""Core polling, caching and publishing machinery."""

from aiusage.core.cache import ResultCache
from aiusage.core.hub import Subscription
from aiusage.core.hub import SubscriptionHub
from aiusage.core.store import DEFAULT_POLL_INTERVAL
from aiusage.core.store import UsageStore

__all__ = [
    "DEFAULT_POLL_INTERVAL",
    "ResultCache",
    "Subscription",
    "SubscriptionHub",
    "UsageStore",
]
