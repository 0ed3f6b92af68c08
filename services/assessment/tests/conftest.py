"""Shared fixtures for the Assessment service tests.

Settings are read once and cached, so the environment is pinned here before
any service module is imported.
"""

import os
import tempfile

_DB_DIR = tempfile.mkdtemp(prefix="lms-assessment-")
os.environ["ENV"] = "test"
os.environ["DATABASE_DSN"] = f"sqlite+aiosqlite:///{_DB_DIR}/assessment.db"
os.environ["JWT_PUBLIC_KEY"] = "test-signing-secret-0123456789abcdef"
os.environ["JWT_ALGORITHMS"] = '["HS256"]'
os.environ["OIDC_ISSUER"] = "https://issuer.test"
os.environ["OIDC_AUDIENCE"] = "lms"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from packages.common.auth import User, get_current_user
from services.assessment.app import app
from services.assessment.models import Base
from services.assessment.repo import engine

TEACHER = User(sub="t-1", email="teacher@example.com", roles=["teacher"])
OTHER_TEACHER = User(sub="t-2", roles=["teacher"])
STUDENT = User(sub="s-1", roles=["student"])
OTHER_STUDENT = User(sub="s-2", roles=["student"])
ADMIN = User(sub="a-1", roles=["admin"])


@pytest_asyncio.fixture
async def db():
    """Fresh schema per test; pooled connections are closed on teardown."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    await engine.dispose()


@pytest.fixture
def login():
    """Return a callable switching the authenticated user for API calls."""
    def _login(user: User) -> None:
        app.dependency_overrides[get_current_user] = lambda: user

    yield _login
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(db, login):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


MCQ = {
    "type": "mcq",
    "text": "Which planet is largest?",
    "marks": 4,
    "order": 1,
    "options": [{"id": "A", "text": "Mars"}, {"id": "B", "text": "Jupiter"}, {"id": "C", "text": "Venus"}],
    "correct_answer": ["B"],
    "explanation": "Jupiter is the largest planet.",
}
MULTI = {
    "type": "multiple_choice",
    "text": "Which are gas giants?",
    "marks": 10,
    "order": 2,
    "partial_credit": True,
    "options": [{"id": "A", "text": "Mars"}, {"id": "B", "text": "Jupiter"}, {"id": "C", "text": "Saturn"}],
    "correct_answer": ["B", "C"],
}
SHORT = {
    "type": "short_answer",
    "text": "Who formulated the laws of motion?",
    "marks": 6,
    "order": 3,
    "correct_answer": ["Newton", "Isaac Newton"],
}


async def active_quiz(client, login, **settings) -> tuple[int, dict[str, int]]:
    """Create and activate the three-question, 20-mark quiz as TEACHER; return its id and question ids."""
    login(TEACHER)
    r = await client.post("/quizzes", json={"title": "Solar system", **settings})
    assert r.status_code == 201, r.text
    quiz_id = r.json()["id"]
    ids = {}
    for name, body in (("mcq", MCQ), ("multi", MULTI), ("short", SHORT)):
        r = await client.post(f"/quizzes/{quiz_id}/questions", json=body)
        assert r.status_code == 201, r.text
        ids[name] = r.json()["id"]
    r = await client.post(f"/quizzes/{quiz_id}/activate")
    assert r.status_code == 200
    assert r.json()["status"] == "active"
    return quiz_id, ids
