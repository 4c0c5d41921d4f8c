import json
import os

TEST_DB_FILE = "test_gradeflow.db"
TEST_DB_URL = f"sqlite:///./{TEST_DB_FILE}"

# must be set before gradeflow.core.config is imported
os.environ.setdefault("GRADEFLOW_DATABASE_URL", TEST_DB_URL)

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from gradeflow.core.deps import get_db, get_evaluator, get_storage  # noqa: E402
from gradeflow.db.base_class import Base  # noqa: E402
from gradeflow.main import app  # noqa: E402
from gradeflow.models.assignment import Assignment  # noqa: E402
from gradeflow.models.submission import Submission  # noqa: E402
from gradeflow.services.evaluation import EvaluationClient  # noqa: E402
from gradeflow.storage.local import LocalFileStorage  # noqa: E402

engine = create_engine(
    TEST_DB_URL,
    connect_args={"check_same_thread": False},
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

TEACHER_ID = "teacher-1"
STUDENT_ID = "student-1"

CANONICAL_REPLY = """OVERALL GRADE:
85

STRENGTHS:
- Clear structure
- Good use of sources

AREAS FOR IMPROVEMENT:
- More worked examples

DETAILED FEEDBACK:
Good work overall. The argument is easy to follow.

RECOMMENDATIONS:
- Add citations
- Proofread the conclusion

CONCLUDING REMARKS:
Keep it up.
"""


def override_get_db():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


class FakeGemini:
    """In-process stand-in for the generateContent endpoint, served via httpx.MockTransport."""

    def __init__(self):
        self.reply = CANONICAL_REPLY
        self.status_code = 200
        self.body = None
        self.network_error = False
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.network_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.body is not None:
            return httpx.Response(self.status_code, json=self.body)
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "upstream says no"}})
        return httpx.Response(
            200,
            json={
                "candidates": [
                    {"content": {"parts": [{"text": self.reply}]}, "finishReason": "STOP"}
                ]
            },
        )

    def payload(self, index: int = -1) -> dict:
        return json.loads(self.requests[index].content)

    def client(self, api_key: str = "test-key") -> EvaluationClient:
        return EvaluationClient(
            api_key=api_key,
            model="gemini-test",
            api_base="https://gemini.test/v1beta",
            transport=httpx.MockTransport(self.handler),
        )


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create a fresh schema once for the whole test session."""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    if os.path.exists(TEST_DB_FILE):
        os.remove(TEST_DB_FILE)


@pytest.fixture(autouse=True)
def clean_tables():
    db = TestingSessionLocal()
    try:
        # child -> parent
        db.query(Submission).delete()
        db.query(Assignment).delete()
        db.commit()
        yield
    finally:
        db.close()


@pytest.fixture()
def db():
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_assignment(db):
    def _make(max_points: float = 100, status: str = "published", teacher_id: str = TEACHER_ID) -> int:
        a = Assignment(
            teacher_id=teacher_id,
            title="Essay on rivers",
            instructions="Write about a river you know.",
            max_points=max_points,
            status=status,
            total_submissions=0,
        )
        db.add(a)
        db.commit()
        db.refresh(a)
        return a.id

    return _make


@pytest.fixture()
def assignment_id(make_assignment) -> int:
    return make_assignment()


@pytest.fixture()
def storage(tmp_path) -> LocalFileStorage:
    return LocalFileStorage(tmp_path / "artifacts")


@pytest.fixture()
def gemini() -> FakeGemini:
    return FakeGemini()


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def client(storage, gemini):
    """Test client wired to the test DB, a temp-dir store and the fake evaluator."""
    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage
    app.dependency_overrides[get_evaluator] = lambda: gemini.client()
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


def student(user_id: str = STUDENT_ID) -> dict:
    return {"X-User-Id": user_id, "X-User-Role": "student"}


def teacher(user_id: str = TEACHER_ID) -> dict:
    return {"X-User-Id": user_id, "X-User-Role": "teacher"}


def stored_files(storage: LocalFileStorage) -> list:
    if not storage.root.exists():
        return []
    return [p for p in storage.root.rglob("*") if p.is_file()]
