# src/infra/__init__.py
"""
Инфраструктурный слой.
Работа с внешними хранилищами: Redis и объектное хранилище журналов.
"""

from src.infra.redis_client import RedisClient, get_redis
from src.infra.object_storage import (
    ObjectStorage,
    FileSystemObjectStorage,
    RedisObjectStorage,
    create_object_storage,
)

__all__ = [
    "RedisClient",
    "get_redis",
    "ObjectStorage",
    "FileSystemObjectStorage",
    "RedisObjectStorage",
    "create_object_storage",
]
