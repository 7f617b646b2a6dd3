import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import changewatch.models  # noqa: F401  (registers tables on Base.metadata)
from changewatch.database import Base
from changewatch.models import Change, DomSnapshot, Source
from changewatch.services.llm_client import Completion

BASE_TIME = datetime(2025, 3, 1, 7, 20, tzinfo=timezone.utc)


class StubLLM:
    """Stand-in for LLMClient.

    ``responses`` is either a list consumed in order (the last entry repeats)
    or a callable taking ``(schema_name, messages)``. Each response may be a
    dict (returned as JSON with finish_reason "stop"), a Completion, or an
    exception to raise.
    """

    def __init__(self, responses):
        self.responses = responses
        self.calls = []

    def complete(self, model, messages, schema_name, schema, temperature=None, max_tokens=None):
        self.calls.append({
            "model": model,
            "messages": messages,
            "schema_name": schema_name,
            "schema": schema,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        if callable(self.responses):
            response = self.responses(schema_name, messages)
        elif len(self.responses) > 1:
            response = self.responses.pop(0)
        else:
            response = self.responses[0]

        if isinstance(response, Exception):
            raise response
        if isinstance(response, Completion):
            return response
        return Completion(content=json.dumps(response), finish_reason="stop", model=model)

    def user_prompt(self, index: int = -1) -> str:
        return self.calls[index]["messages"][1]["content"]


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    with factory() as session:
        yield session


@pytest.fixture
def stub_llm():
    return StubLLM


@pytest.fixture
def make_source(session):
    def _make(url: str = "https://docs.example.com/changelog", is_active: bool = True) -> Source:
        source = Source(url=url, is_active=is_active)
        session.add(source)
        session.commit()
        return source
    return _make


@pytest.fixture
def make_snapshot(session):
    def _make(url: str, text: str | None = None, content: str | None = None, days: float = 0) -> DomSnapshot:
        if content is None:
            content = json.dumps({"textContent": text or ""})
        snapshot = DomSnapshot(
            url=url,
            content=content,
            captured_at=BASE_TIME + timedelta(days=days),
        )
        session.add(snapshot)
        session.commit()
        return snapshot
    return _make


@pytest.fixture
def make_change(session):
    def _make(
        source: Source,
        snapshot_id1: int,
        snapshot_id2: int,
        diff=None,
        classification: str | None = None,
        days: float = 0,
    ) -> Change:
        change = Change(
            source_id=source.id,
            snapshot_id1=snapshot_id1,
            snapshot_id2=snapshot_id2,
            diff={"summary": "Earlier change"} if diff is None else diff,
            classification=classification,
            explanation="seeded" if classification else None,
            timestamp=BASE_TIME + timedelta(days=days),
        )
        session.add(change)
        session.commit()
        return change
    return _make


def all_changes(session) -> list[Change]:
    session.expire_all()
    return session.query(Change).order_by(Change.id).all()


@pytest.fixture
def changes_in_db(session):
    return lambda: all_changes(session)
