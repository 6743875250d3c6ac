from edupass.storage.bunny import (
    BunnyApiError,
    BunnyNotConfiguredError,
    BunnyStorageClient,
    RemoteAsset,
    RemoteDeletionResult,
    RemoteDeletionStatus,
)
from edupass.storage.schemas import DeletionReport


__all__ = [
    "BunnyApiError",
    "BunnyNotConfiguredError",
    "BunnyStorageClient",
    "DeletionReport",
    "RemoteAsset",
    "RemoteDeletionResult",
    "RemoteDeletionStatus",
]
