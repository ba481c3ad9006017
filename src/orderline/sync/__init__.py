from orderline.sync.offline_queue import OfflineSyncQueue, SyncNotice, SyncStatus
from orderline.sync.refetch import PeriodicRefetcher
from orderline.sync.remote import (
    OrdersApiClient,
    RemoteError,
    RemoteRequestError,
    RemoteUnavailableError,
)

__all__ = [
    "OfflineSyncQueue",
    "OrdersApiClient",
    "PeriodicRefetcher",
    "RemoteError",
    "RemoteRequestError",
    "RemoteUnavailableError",
    "SyncNotice",
    "SyncStatus",
]
