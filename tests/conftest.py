import os

# Must be set before engagement.* is imported: the engine and settings are
# built at import time.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("OTEL_ENABLED", "false")
os.environ.pop("SENTIMENT_ANALYSIS_URL", None)
os.environ.pop("SMTP_HOST", None)

from datetime import datetime, timedelta

import aiosmtplib
import pytest
import pytest_asyncio
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from engagement.auth import Actor
from engagement.clients.email_client import EmailDispatcher
from engagement.clients.minio_client import AssetStore
from engagement.database import Base, get_db
from engagement.main import app
from engagement.models import Connection, Post, User
from engagement.notifications import NotificationWriter
from engagement.repository import PostRepository
from engagement.routers.posts import get_engagement_service
from engagement.service import PostEngagementService

ASSET_BASE = "http://assets.test/media"
CLIENT_URL = "http://client.test"


class StubS3:
    """In-memory stand-in for the boto3 S3 client."""

    def __init__(self, fail_put: bool = False, fail_delete: bool = False) -> None:
        self.objects: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_put = fail_put
        self.fail_delete = fail_delete

    def put_object(self, Bucket, Key, Body, ContentType):
        if self.fail_put:
            raise ConnectionError("minio unreachable")
        self.objects[Key] = Body.read()

    def delete_object(self, Bucket, Key):
        if self.fail_delete:
            raise ConnectionError("minio unreachable")
        self.deleted.append(Key)
        self.objects.pop(Key, None)


class FakeSentiment:
    def __init__(self, result=None) -> None:
        self.result = result
        self.calls: list[str] = []

    async def analyze(self, text):
        self.calls.append(text)
        return self.result


@pytest_asyncio.fixture
async def engine():
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield eng
    finally:
        await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def users(session_factory):
    """alice ↔ bob are connected; carol is outside alice's network."""
    async with session_factory() as s:
        s.add_all(
            [
                User(user_id="alice", username="alice", name="Alice Chen",
                     email="alice@example.com", avatar="http://img/alice.png",
                     headline="ML Engineer"),
                User(user_id="bob", username="bob", name="Bob Martinez",
                     email="bob@example.com", headline="Builder"),
                User(user_id="carol", username="carol", name="Carol Singh",
                     email="carol@example.com"),
            ]
        )
        s.add_all(
            [
                Connection(user_id="alice", connection_id="bob"),
                Connection(user_id="bob", connection_id="alice"),
            ]
        )
        await s.commit()
    return {
        "alice": Actor("alice", "Alice Chen", "alice@example.com", ["bob"]),
        "bob": Actor("bob", "Bob Martinez", "bob@example.com", ["alice"]),
        "carol": Actor("carol", "Carol Singh", "carol@example.com", []),
    }


@pytest.fixture
def make_post(session_factory):
    """Insert a post directly, `minutes_ago` before a fixed reference time."""

    async def _make(author_id, content, minutes_ago=0, **fields):
        async with session_factory() as s:
            post = Post(
                author_id=author_id,
                content=content,
                created_at=datetime(2026, 1, 1, 12, 0) - timedelta(minutes=minutes_ago),
                **fields,
            )
            s.add(post)
            await s.commit()
            return post.post_id

    return _make


@pytest.fixture
def s3():
    return StubS3()


@pytest.fixture
def assets(s3):
    return AssetStore(s3, "media", ASSET_BASE)


@pytest.fixture
def sentiment():
    return FakeSentiment({"label": "POSITIVE", "score": 0.98})


@pytest.fixture
def mailer():
    return EmailDispatcher("smtp.test", port=587, from_email="noreply@feed.test")


@pytest.fixture(autouse=True)
def outbox(monkeypatch):
    """Capture outgoing mail instead of talking to an SMTP server."""
    sent = []

    async def fake_send(message, **kwargs):
        sent.append(message)
        return {}, "OK"

    monkeypatch.setattr(aiosmtplib, "send", fake_send)
    return sent


@pytest.fixture
def smtp_down(monkeypatch):
    async def failing_send(message, **kwargs):
        raise aiosmtplib.SMTPConnectError("smtp down")

    monkeypatch.setattr(aiosmtplib, "send", failing_send)


@pytest_asyncio.fixture
async def db(session_factory):
    async with session_factory() as session:
        yield session


@pytest.fixture
def service(db, sentiment, assets, mailer):
    return PostEngagementService(
        posts=PostRepository(db),
        notifications=NotificationWriter(db),
        sentiment=sentiment,
        assets=assets,
        mailer=mailer,
        client_url=CLIENT_URL,
    )


@pytest_asyncio.fixture
async def api_client(session_factory, sentiment, assets, mailer):
    async def _get_db():
        async with session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def _get_service(db: AsyncSession = Depends(get_db)):
        return PostEngagementService(
            posts=PostRepository(db),
            notifications=NotificationWriter(db),
            sentiment=sentiment,
            assets=assets,
            mailer=mailer,
            client_url=CLIENT_URL,
        )

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_engagement_service] = _get_service
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://testserver") as client:
            yield client
    finally:
        app.dependency_overrides.clear()
