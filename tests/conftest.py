"""Shared fixtures: environment, database and in-memory Redis doubles."""

from __future__ import annotations

import asyncio
import fnmatch
import os
import sys
from collections import defaultdict
from datetime import timedelta
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

TEST_DB_PATH = Path(__file__).parent / "test.db"
os.environ["DATABASE_URL"] = f"sqlite:///{TEST_DB_PATH}"
os.environ.setdefault("SECRET_KEY", "test-secret")
os.environ.setdefault("ACCESS_TOKEN_EXPIRE_MINUTES", "15")
os.environ["APP_TIMEZONE"] = "UTC"
os.environ.setdefault("LOG_LEVEL", "DEBUG")

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from clinic_api.config import reset_settings_cache

reset_settings_cache()

from clinic_api.domain.entities import Role  # noqa: E402
from clinic_api.infrastructure import database  # noqa: E402
from clinic_api.infrastructure.notifications import RedisNotificationRelay  # noqa: E402
from clinic_api.infrastructure.security import create_access_token  # noqa: E402


class FakeRedis:
    """Synchronous stand-in for the analytics cache client."""

    def __init__(self) -> None:
        self.store: dict[str, str] = {}
        self.ttls: dict[str, int | None] = {}
        self.fail = False

    def _check(self) -> None:
        if self.fail:
            raise RedisConnectionError("redis unavailable")

    def get(self, key):
        self._check()
        return self.store.get(key)

    def set(self, key, value, ex=None):
        self._check()
        self.store[key] = value
        self.ttls[key] = ex
        return True

    def scan_iter(self, match="*"):
        self._check()
        return iter([key for key in list(self.store) if fnmatch.fnmatchcase(key, match)])

    def delete(self, *keys):
        self._check()
        removed = 0
        for key in keys:
            if self.store.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed


class InMemoryBroker:
    """Pub/sub channel shared by every fake client of one test."""

    def __init__(self) -> None:
        self.subscribers: defaultdict[str, list[asyncio.Queue]] = defaultdict(list)
        self.published: list[tuple[str, str]] = []

    def publish(self, channel: str, data: str) -> int:
        self.published.append((channel, data))
        queues = list(self.subscribers[channel])
        for queue in queues:
            queue.put_nowait({"type": "message", "channel": channel, "data": data})
        return len(queues)


class FakePubSub:
    def __init__(self, broker: InMemoryBroker) -> None:
        self.broker = broker
        self.queue: asyncio.Queue = asyncio.Queue()
        self.channels: list[str] = []

    async def subscribe(self, *channels: str) -> None:
        for channel in channels:
            self.broker.subscribers[channel].append(self.queue)
            self.channels.append(channel)
            self.queue.put_nowait({"type": "subscribe", "channel": channel, "data": 1})

    async def listen(self):
        while True:
            message = await self.queue.get()
            if message is None:
                return
            yield message

    async def aclose(self) -> None:
        for channel in self.channels:
            subscribers = self.broker.subscribers[channel]
            if self.queue in subscribers:
                subscribers.remove(self.queue)
        self.queue.put_nowait(None)


class FakeAsyncRedis:
    """Asyncio client double routing publishes through an :class:`InMemoryBroker`."""

    def __init__(self, broker: InMemoryBroker) -> None:
        self.broker = broker
        self.closed = False

    async def publish(self, channel: str, data: str) -> int:
        return self.broker.publish(channel, data)

    def pubsub(self) -> FakePubSub:
        return FakePubSub(self.broker)

    async def aclose(self) -> None:
        self.closed = True


def build_relay(broker: InMemoryBroker, **kwargs) -> RedisNotificationRelay:
    return RedisNotificationRelay(
        FakeAsyncRedis(broker), FakeAsyncRedis(broker), channel="notifications", **kwargs
    )


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_database():
    """Recreate every table so each test starts from an empty database."""

    database.initialize_database()
    database.Base.metadata.drop_all(bind=database.engine, checkfirst=True)
    database.Base.metadata.create_all(bind=database.engine)
    yield
    database.engine.dispose()


@pytest.fixture(scope="session", autouse=True)
def remove_database_file():
    yield
    if TEST_DB_PATH.exists():
        TEST_DB_PATH.unlink()


@pytest.fixture
def session():
    db = database.SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def broker() -> InMemoryBroker:
    return InMemoryBroker()


@pytest.fixture
def relay(broker: InMemoryBroker) -> RedisNotificationRelay:
    return build_relay(broker)


@pytest.fixture
def relay_factory(broker: InMemoryBroker):
    def factory(**kwargs) -> RedisNotificationRelay:
        return build_relay(broker, **kwargs)

    return factory


@pytest.fixture
def cache_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def app(relay: RedisNotificationRelay, cache_client: FakeRedis):
    pytest.importorskip("fastapi")
    from main import create_app

    return create_app(relay=relay, cache_client=cache_client)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def token_for():
    """Return a helper that signs an access token for a test principal."""

    def factory(
        user_id: str = "user-1",
        *,
        tenant_id: str = "tenant-1",
        role: Role = Role.DOCTOR,
        branch_ids: tuple[str, ...] = (),
        expires_delta: timedelta | None = None,
    ) -> str:
        return create_access_token(
            user_id=user_id,
            tenant_id=tenant_id,
            role=role,
            branch_ids=branch_ids,
            email=f"{user_id}@example.com",
            expires_delta=expires_delta,
        )

    return factory


@pytest.fixture
def auth_headers(token_for):
    def factory(user_id: str = "user-1", **kwargs) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user_id, **kwargs)}"}

    return factory
