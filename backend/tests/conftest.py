"""Pytest configuration and fixtures."""

import os
from collections.abc import AsyncGenerator, Iterator
from datetime import datetime, timedelta, timezone

# The application must not open the on-disk database while under test
os.environ.setdefault("CORTEX_STORAGE_BACKEND", "memory")

import pytest
from httpx import ASGITransport, AsyncClient

from cortex_review.api.deps import get_session_store
from cortex_review.db.kv import InMemoryKeyValueStore, SqlKeyValueStore
from cortex_review.db.repositories.session import SessionStore
from cortex_review.db.repositories.validation import ValidationRepository
from cortex_review.db.session import build_engine, build_sessionmaker, init_db
from cortex_review.main import app
from cortex_review.models.finding import Finding, Severity
from cortex_review.models.validation import Validation, ValidationStatus
from cortex_review.services.session.manager import SessionManager


class FakeClock:
    """Deterministic clock: every call returns a strictly later instant."""

    def __init__(
        self,
        start: datetime = datetime(2025, 1, 1, 9, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ) -> None:
        self.current = start
        self.step = step

    def __call__(self) -> datetime:
        self.current = self.current + self.step
        return self.current


def build_finding(
    finding_id: str,
    model_source: str = "model-a",
    severity: Severity = Severity.MEDIUM,
    **overrides,
) -> Finding:
    """테스트용 Finding 생성."""
    fields = {
        "id": finding_id,
        "title": f"Finding {finding_id}",
        "description": f"Description of {finding_id}",
        "severity": severity,
        "category": "Tampering",
        "model_source": model_source,
        "created_at": datetime(2025, 1, 1, tzinfo=timezone.utc),
    }
    fields.update(overrides)
    return Finding(**fields)


def build_validation(
    finding_id: str,
    status: ValidationStatus = ValidationStatus.CONFIRMED,
    **scores,
) -> Validation:
    """테스트용 Validation 생성."""
    fields = {
        "finding_id": finding_id,
        "status": status,
        "validated_by": "analyst",
        "validated_at": datetime(2025, 1, 2, tzinfo=timezone.utc),
    }
    fields.update(scores)
    return Validation(**fields)


# =============================================================================
# Storage Fixtures
# =============================================================================
@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def kv_store() -> InMemoryKeyValueStore:
    """인메모리 key-value 저장소."""
    return InMemoryKeyValueStore()


@pytest.fixture
def sql_engine():
    """
    테스트용 SQLite 엔진.

    각 테스트 함수마다 독립된 인메모리 DB를 사용합니다.
    """
    engine = build_engine("sqlite://")
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sql_kv_store(sql_engine) -> SqlKeyValueStore:
    return SqlKeyValueStore(build_sessionmaker(sql_engine))


@pytest.fixture
def session_store(kv_store, clock) -> SessionStore:
    return SessionStore(kv_store, clock=clock)


# =============================================================================
# Repository / Service Fixtures
# =============================================================================
@pytest.fixture
def validation_repo(session_store) -> ValidationRepository:
    return ValidationRepository(session_store)


@pytest.fixture
def session_manager(session_store) -> SessionManager:
    return SessionManager(session_store)


@pytest.fixture
def pruning_manager(session_store) -> SessionManager:
    return SessionManager(session_store, orphan_policy="prune")


# =============================================================================
# Model Fixtures
# =============================================================================
@pytest.fixture
def make_finding():
    """Finding 팩토리."""
    return build_finding


@pytest.fixture
def make_validation():
    """Validation 팩토리."""
    return build_validation


@pytest.fixture
def findings_a() -> list[Finding]:
    """Model A findings (3건)."""
    return [
        build_finding("f1", severity=Severity.HIGH, cwe_id="89", confidence=90),
        build_finding("f2"),
        build_finding("f3", severity=Severity.LOW, mitigations=["Rotate keys"]),
    ]


@pytest.fixture
def findings_b() -> list[Finding]:
    """Model B findings (2건)."""
    return [
        build_finding("g1", model_source="model-b", severity=Severity.HIGH),
        build_finding("g2", model_source="model-b"),
    ]


@pytest.fixture
def populated_session(session_manager, findings_a, findings_b):
    """Findings가 적재된 세션."""
    session = session_manager.create_session("Audit 1")
    return session_manager.update_findings(session.id, findings_a, findings_b)


# =============================================================================
# HTTP Client Fixtures
# =============================================================================
@pytest.fixture
def api_store(kv_store, clock) -> Iterator[SessionStore]:
    """API 의존성을 인메모리 저장소로 오버라이드."""
    store = SessionStore(kv_store, clock=clock)
    app.dependency_overrides[get_session_store] = lambda: store
    try:
        yield store
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
async def client(api_store) -> AsyncGenerator[AsyncClient, None]:
    """테스트용 비동기 HTTP 클라이언트."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
