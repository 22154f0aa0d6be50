import logging
import os

logger = logging.getLogger(__name__)

# Check which storage backend to use: memory (default), dynamodb or mongodb
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").lower()

if STORAGE_BACKEND == "dynamodb":
    from edumanage.storage import dynamodb as store  # type: ignore
elif STORAGE_BACKEND == "mongodb":
    from edumanage.storage import mongodb as store  # type: ignore
else:
    from edumanage.storage import memory as store  # type: ignore

logger.info(f"[Storage] Using {store.BACKEND_NAME} backend")

from edumanage.storage.records import Collection  # noqa: E402

# Explicitly export the selected backend module
__all__ = ["store", "Collection"]
