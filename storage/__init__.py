from .dynamodb import (
    ProfileStore,
    RecordNotFoundError,
    SearchHistoryStore,
    StorageError,
)

__all__ = ["ProfileStore", "RecordNotFoundError", "SearchHistoryStore", "StorageError"]
