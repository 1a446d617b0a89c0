"""Pytest fixtures for the DocSpace test suite.

Provides reusable test fixtures for:
- In-memory SQLite database session, rebuilt for every test
- Tenants and users (member, platform admin, member of another tenant)
- Fake adapters: in-memory blob store, scripted LLM provider, recording
  task dispatcher and an httpx client on a MockTransport
- TestClient with every infrastructure dependency overridden
- An extracted blob produced by running the real extraction pipeline

Usage:
    def test_list_files(client, user_headers):
        response = client.get("/api/v1/files", headers=user_headers)
        assert response.status_code == 200
"""

import hashlib
import json
import os
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Dict, Generator, List, Optional, Tuple

# Set environment variables BEFORE any docspace imports so settings pick them up
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret-key-256-bits-minimum-length-required-for-security")
os.environ.setdefault("PASSWORD_PEPPER", "test-pepper-secret-key-32-chars-long")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from docspace.auth.jwt import create_access_token
from docspace.auth.password import hash_password
from docspace.database import get_db
from docspace.dependencies import get_blob_store, get_dispatcher, get_http_client, get_llm_factory
from docspace.domain.ai.ports import LLMProviderPort, LLMResponse
from docspace.domain.storage.ports import BlobEntry, BlobStorePort, StoredBlob
from docspace.extraction.service import run_extraction_job, trigger_extraction
from docspace.files.service import store_file
from docspace.main import app
from docspace.agents.tools.context import ToolContext
from docspace.models import Admin, Agent, AgentSession, Base, BlobInventory, Membership, Tenant, User


test_engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


# =============================================================================
# FAKE ADAPTERS
# =============================================================================

class InMemoryBlobStore(BlobStorePort):
    """BlobStorePort backed by a dict keyed by (store, key)."""

    def __init__(self):
        self.objects: Dict[Tuple[str, str], StoredBlob] = {}
        self.modified: Dict[Tuple[str, str], datetime] = {}

    def put(self, store, key, data, content_type=None, metadata=None):
        self.objects[(store, key)] = StoredBlob(data=data, metadata=dict(metadata or {}), content_type=content_type)
        self.modified[(store, key)] = datetime.now(timezone.utc)
        return hashlib.md5(data).hexdigest()

    def get(self, store, key):
        return self.objects.get((store, key))

    def delete(self, store, key):
        self.modified.pop((store, key), None)
        return self.objects.pop((store, key), None) is not None

    def exists(self, store, key):
        return (store, key) in self.objects

    def list(self, store, prefix=""):
        return [
            BlobEntry(key=key, size_bytes=len(blob.data), last_modified=self.modified[(s, key)])
            for (s, key), blob in sorted(self.objects.items())
            if s == store and key.startswith(prefix)
        ]

    def keys(self, store: str) -> List[str]:
        return [key for (s, key) in self.objects if s == store]


class ScriptedProvider(LLMProviderPort):
    """Returns queued responses in order and records every call.

    Queue an Exception instance to make the next call raise it.
    """

    name = "scripted"

    def __init__(self):
        self.responses = deque()
        self.calls: List[dict] = []

    def queue(self, *responses) -> "ScriptedProvider":
        for response in responses:
            if isinstance(response, str):
                response = LLMResponse(content=response, tokens_in=10, tokens_out=5)
            self.responses.append(response)
        return self

    def complete(self, messages, *, model, temperature=0.7, max_tokens=4096, tools=None, attachments=None, json_mode=False):
        self.calls.append({
            "messages": list(messages),
            "model": model,
            "temperature": temperature,
            "tools": tools,
            "attachments": attachments,
            "json_mode": json_mode,
        })
        if not self.responses:
            raise AssertionError("ScriptedProvider has no response queued")
        response = self.responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


class FakeLLMFactory:
    """Hands out the same scripted provider for every provider name."""

    def __init__(self, provider: ScriptedProvider):
        self.provider = provider
        self.requested: List[str] = []

    def get(self, provider_name: str) -> ScriptedProvider:
        self.requested.append(provider_name)
        return self.provider


class RecordingDispatcher:
    """TaskDispatcher stand-in that records enqueued work."""

    def __init__(self):
        self.extraction: List[tuple] = []
        self.qa: List = []
        self.agent_loops: List[tuple] = []

    def enqueue_extraction(self, job_id, correlation_id=None):
        self.extraction.append((job_id, correlation_id))
        return True

    def enqueue_qa(self, job_id):
        self.qa.append(job_id)
        return True

    def enqueue_agent_loop(self, session_id, message=None):
        self.agent_loops.append((session_id, message))
        return True


class MockHTTP:
    """Route table for an httpx.MockTransport, keyed by method and URL without query."""

    def __init__(self):
        self.routes: Dict[Tuple[str, str], Callable[[httpx.Request], httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    def add(self, method: str, url: str, status_code: int = 200, json_body=None, raises: Optional[Exception] = None):
        def respond(request: httpx.Request) -> httpx.Response:
            if raises is not None:
                raise raises
            return httpx.Response(status_code, json=json_body if json_body is not None else {})
        self.routes[(method.upper(), url)] = respond

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url).split("?", 1)[0]
        respond = self.routes.get((request.method, url))
        if respond is None:
            return httpx.Response(404, json={"error": "not mocked"})
        return respond(request)

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self.handler))


# =============================================================================
# DATABASE AND ADAPTER FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Fresh schema for every test."""
    Base.metadata.create_all(bind=test_engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def blob_store() -> InMemoryBlobStore:
    return InMemoryBlobStore()


@pytest.fixture
def llm() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def llm_factory(llm: ScriptedProvider) -> FakeLLMFactory:
    return FakeLLMFactory(llm)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def mock_http() -> MockHTTP:
    return MockHTTP()


@pytest.fixture
def http_client(mock_http: MockHTTP) -> Generator[httpx.Client, None, None]:
    with mock_http.client() as client:
        yield client


# =============================================================================
# TENANTS AND USERS
# =============================================================================

def _make_user(db: Session, email: str, full_name: str, password: str, tenant: Optional[Tenant], role: str = "member") -> User:
    user = User(email=email, full_name=full_name, password_hash=hash_password(password))
    db.add(user)
    db.flush()
    if tenant is not None:
        db.add(Membership(tenant_id=tenant.tenant_id, user_id=user.user_id, role=role))
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def tenant(db_session: Session) -> Tenant:
    tenant = Tenant(name="Acme Corporation", slug="acme")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def other_tenant(db_session: Session) -> Tenant:
    tenant = Tenant(name="Globex", slug="globex")
    db_session.add(tenant)
    db_session.commit()
    db_session.refresh(tenant)
    return tenant


@pytest.fixture
def user(db_session: Session, tenant: Tenant) -> User:
    """Regular member of the Acme tenant."""
    return _make_user(db_session, "member@acme.com", "Member User", "MemberP@ss123", tenant)


@pytest.fixture
def admin_user(db_session: Session, tenant: Tenant) -> User:
    """Platform admin who is also an owner of the Acme tenant."""
    admin = _make_user(db_session, "admin@acme.com", "Admin User", "AdminP@ss123", tenant, role="owner")
    db_session.add(Admin(user_id=admin.user_id))
    db_session.commit()
    return admin


@pytest.fixture
def other_user(db_session: Session, other_tenant: Tenant) -> User:
    """Member of the Globex tenant."""
    return _make_user(db_session, "member@globex.com", "Globex User", "GlobexP@ss123", other_tenant)


def _headers(user: User, tenant: Optional[Tenant]) -> Dict[str, str]:
    token = create_access_token(user.user_id, user.email, tenant.tenant_id if tenant else None)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user_headers(user: User, tenant: Tenant) -> Dict[str, str]:
    return _headers(user, tenant)


@pytest.fixture
def admin_headers(admin_user: User, tenant: Tenant) -> Dict[str, str]:
    return _headers(admin_user, tenant)


@pytest.fixture
def other_headers(other_user: User, other_tenant: Tenant) -> Dict[str, str]:
    return _headers(other_user, other_tenant)


# =============================================================================
# TEST CLIENT
# =============================================================================

@pytest.fixture
def client(
    db_session: Session,
    blob_store: InMemoryBlobStore,
    llm_factory: FakeLLMFactory,
    dispatcher: RecordingDispatcher,
    http_client: httpx.Client,
) -> Generator[TestClient, None, None]:
    """TestClient with database and infrastructure dependencies replaced by fakes."""

    def override_get_db():
        yield db_session

    def override_get_http_client():
        yield http_client

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_blob_store] = lambda: blob_store
    app.dependency_overrides[get_llm_factory] = lambda: llm_factory
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_http_client] = override_get_http_client

    yield TestClient(app)

    app.dependency_overrides.clear()


# =============================================================================
# EXTRACTION HELPERS
# =============================================================================

SAMPLE_EXTRACTION = {
    "title": "Quarterly Report",
    "language": "en",
    "pages": [
        {"pageNumber": 1, "text": "Revenue grew by 12 percent in the third quarter.", "headings": ["Summary"]},
        {"pageNumber": 2, "text": "Operating costs remained flat year over year.", "headings": ["Costs"]},
    ],
}


@pytest.fixture
def uploaded_file(db_session: Session, blob_store: InMemoryBlobStore, tenant: Tenant, user: User):
    """A text file stored in the Acme tenant root, with its pending inventory row."""
    return store_file(
        db_session,
        blob_store,
        tenant_id=tenant.tenant_id,
        user_id=user.user_id,
        file_name="report.txt",
        data=b"Revenue grew by 12 percent in the third quarter.",
        mime_type="text/plain",
    )


@pytest.fixture
def uploaded_blob(db_session: Session, uploaded_file) -> BlobInventory:
    return db_session.query(BlobInventory).filter(BlobInventory.blob_key == uploaded_file.blob_key).one()


@pytest.fixture
def extracted_blob(
    db_session: Session,
    blob_store: InMemoryBlobStore,
    llm: ScriptedProvider,
    llm_factory: FakeLLMFactory,
    uploaded_blob: BlobInventory,
) -> BlobInventory:
    """uploaded_blob after a successful run of the extraction pipeline (two chunks)."""
    result = trigger_extraction(db_session, blob_id=uploaded_blob.blob_id)
    llm.queue(json.dumps(SAMPLE_EXTRACTION))
    outcome = run_extraction_job(db_session, result.job_ids[0], blob_store, llm_factory)
    assert outcome["status"] == "completed"
    llm.calls.clear()
    db_session.refresh(uploaded_blob)
    return uploaded_blob


# =============================================================================
# AGENTS
# =============================================================================

@pytest.fixture
def agent(db_session: Session, tenant: Tenant, user: User) -> Agent:
    agent = Agent(
        tenant_id=tenant.tenant_id,
        user_id=user.user_id,
        name="Research Assistant",
        description="Answers questions about company documents",
        goal="Answer the user's question using the tenant's files",
        system_prompt="You are a careful research assistant.",
        model_provider="openai",
        model_name="gpt-4o",
        max_steps=5,
        temperature=0.3,
    )
    db_session.add(agent)
    db_session.commit()
    db_session.refresh(agent)
    return agent


@pytest.fixture
def agent_session(db_session: Session, agent: Agent, user: User) -> AgentSession:
    session = AgentSession(
        agent_id=agent.agent_id,
        user_id=user.user_id,
        tenant_id=agent.tenant_id,
        title="Session with Research Assistant",
    )
    db_session.add(session)
    db_session.commit()
    db_session.refresh(session)
    return session


@pytest.fixture
def tool_context(
    db_session: Session,
    tenant: Tenant,
    user: User,
    blob_store: InMemoryBlobStore,
    agent_session: AgentSession,
    http_client: httpx.Client,
) -> ToolContext:
    """Tool context for the Acme member inside agent_session."""
    return ToolContext(
        db=db_session,
        tenant_id=tenant.tenant_id,
        user_id=user.user_id,
        blob_store=blob_store,
        session_id=agent_session.session_id,
        http_client=http_client,
    )
