"""Dependency injection with a singleton service manager.

The Redis client and mapping store are process-wide resources: opened once
at startup, shared by every request, closed at shutdown. Requests receive
them through FastAPI ``Depends`` so tests can substitute a fake store via
``app.dependency_overrides[get_mapping_store]``.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Optional

import redis.asyncio as redis
from fastapi import Depends, Request

from shortener.config import Settings, get_settings
from shortener.redis import create_redis_client
from shortener.service import ShorteningService
from shortener.store import MappingStore, RedisMappingStore

__all__ = [
    "ServiceManager",
    "RequestContext",
    "get_service_manager",
    "get_mapping_store",
    "get_request_context",
    "get_shortening_service",
]

LOGGER_NAME = "shortener"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logger(level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger


# ============================================================================
# SINGLETON SERVICE MANAGER
# ============================================================================


class ServiceManager:
    """Singleton owner of the shared Redis client and mapping store."""

    _instance: Optional["ServiceManager"] = None
    _initialized: bool = False

    def __new__(cls) -> "ServiceManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    async def initialize(self) -> None:
        """Create shared resources once. Does not contact Redis."""
        if not self._initialized:
            self.settings = get_settings()
            self.logger = setup_logger(self.settings.LOG_LEVEL)
            self.redis = self._setup_redis()
            self.store = RedisMappingStore(
                self.redis,
                prefix=self.settings.KEY_PREFIX,
                timeout=self.settings.STORE_TIMEOUT_SECONDS,
            )
            self._initialized = True

    def _setup_redis(self) -> redis.Redis:
        return create_redis_client(self.settings)

    async def cleanup(self) -> None:
        """Close shared resources at shutdown."""
        if hasattr(self, "redis"):
            await self.redis.aclose()
            del self.redis
        self._initialized = False


_service_manager = ServiceManager()


# ============================================================================
# REQUEST CONTEXT
# ============================================================================


@dataclass
class RequestContext:
    """Per-request view of the shared resources plus tracking fields.

    Attributes:
        store: Shared mapping store
        settings: Cached application settings
        request_id: Unique identifier for this request
        user_agent: Client user agent string
        client_ip: Client IP address
        start_time: Request start timestamp
    """

    store: MappingStore
    settings: Settings
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    start_time: float = field(default_factory=time.time)

    @property
    def logger(self) -> logging.LoggerAdapter:
        return logging.LoggerAdapter(
            logging.getLogger(LOGGER_NAME),
            {
                "request_id": self.request_id,
                "client_ip": self.client_ip,
                "user_agent": self.user_agent,
            },
        )

    def get_duration(self) -> float:
        """Get request duration in milliseconds."""
        return (time.time() - self.start_time) * 1000


# ============================================================================
# DEPENDENCY FUNCTIONS
# ============================================================================


async def get_service_manager() -> ServiceManager:
    if not _service_manager._initialized:
        await _service_manager.initialize()
    return _service_manager


async def get_mapping_store(manager: ServiceManager = Depends(get_service_manager)) -> MappingStore:
    return manager.store


async def get_request_context(
    request: Request,
    store: MappingStore = Depends(get_mapping_store),
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    return RequestContext(
        store=store,
        settings=settings,
        request_id=request.headers.get("x-request-id") or str(uuid.uuid4()),
        user_agent=request.headers.get("user-agent"),
        client_ip=request.client.host if request.client else None,
    )


def get_shortening_service(ctx: RequestContext = Depends(get_request_context)) -> ShorteningService:
    return ShorteningService.from_context(ctx)
