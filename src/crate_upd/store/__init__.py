"""Subscription persistence shared by the notifier and the command surface."""

from .subscriptions import SqliteSubscriptionStore, StoreError, SubscriptionStore

__all__ = [
    "SqliteSubscriptionStore",
    "StoreError",
    "SubscriptionStore",
]
