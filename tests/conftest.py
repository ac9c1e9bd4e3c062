"""Shared test fixtures."""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import pytest

from vizfolio.models import PortfolioDraft, ProjectDraft
from vizfolio.services.ai_content import AIGenerationError, GENERATION_FAILED
from vizfolio.services.gateway import PortfolioGateway
from vizfolio.services.notifications import Notifier
from vizfolio.services.supabase_client import BackendError

USER_ID = "user-1"


def _no_rows() -> BackendError:
    return BackendError(
        "JSON object requested, multiple (or no) rows returned",
        status_code=406,
        code="PGRST116"
    )


class FakeSupabaseClient:
    """In-memory stand-in for SupabaseClient with per-call failure injection.

    ``failures`` maps ``(method, table_or_bucket)`` to the exception raised by
    the next matching call; use ``"*"`` as the table to match any table.
    """

    url = "https://demo.supabase.co"

    def __init__(self):
        self.tables: Dict[str, List[Dict[str, Any]]] = {"profiles": [], "projects": [], "skills": []}
        self.objects: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.failures: Dict[tuple, Exception] = {}
        self.calls: List[tuple] = []
        self.access_token: Optional[str] = None
        self._ids = itertools.count(1)
        self._clock = itertools.count(1)

    def fail(self, method: str, target: str = "*", error: Optional[Exception] = None) -> None:
        self.failures[(method, target)] = error or BackendError("permission denied", status_code=403, code="42501")

    def _maybe_fail(self, method: str, target: str) -> None:
        self.calls.append((method, target))
        for key in ((method, target), (method, "*")):
            if key in self.failures:
                raise self.failures.pop(key)

    @staticmethod
    def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
        return all(str(row.get(column)) == str(value) for column, value in (filters or {}).items())

    def _timestamp(self) -> str:
        return f"2024-01-01T00:00:{next(self._clock):02d}+00:00"

    # PostgREST --------------------------------------------------------

    async def select(self, table, filters=None, order=None, columns="*"):
        self._maybe_fail("select", table)
        rows = [dict(row) for row in self.tables[table] if self._matches(row, filters)]
        if order:
            column, _, direction = order.partition(".")
            rows.sort(key=lambda row: str(row.get(column) or ""), reverse=direction == "desc")
        return rows

    async def select_one(self, table, filters, columns="*"):
        rows = await self.select(table, filters=filters)
        if not rows:
            raise _no_rows()
        return rows[0]

    async def insert(self, table, row):
        self._maybe_fail("insert", table)
        stored = dict(row)
        if not stored.get("id"):
            stored["id"] = f"{table}-{next(self._ids)}"
        stored.setdefault("created_at", self._timestamp())
        self.tables[table].append(stored)
        return dict(stored)

    async def update(self, table, filters, values):
        self._maybe_fail("update", table)
        updated = None
        for row in self.tables[table]:
            if self._matches(row, filters):
                row.update(values)
                row["updated_at"] = self._timestamp()
                updated = updated or dict(row)
        if updated is None:
            raise _no_rows()
        return updated

    async def delete(self, table, filters):
        self._maybe_fail("delete", table)
        self.tables[table] = [row for row in self.tables[table] if not self._matches(row, filters)]

    # Storage ----------------------------------------------------------

    async def upload(self, bucket, path, content, content_type, upsert=False):
        self._maybe_fail("upload", bucket)
        objects = self.objects.setdefault(bucket, {})
        if path in objects and not upsert:
            raise BackendError("The resource already exists", status_code=409, code="Duplicate")
        objects[path] = {"content": content, "mimetype": content_type}
        return {"Key": f"{bucket}/{path}"}

    async def object_info(self, bucket, path):
        self._maybe_fail("object_info", bucket)
        stored = self.objects.get(bucket, {}).get(path)
        if stored is None:
            raise BackendError("Object not found", status_code=404, code="not_found")
        return {"metadata": {"size": len(stored["content"]), "mimetype": stored["mimetype"]}}

    async def list_objects(self, bucket, prefix="", limit=100):
        self._maybe_fail("list_objects", bucket)
        folder = prefix.rstrip("/") + "/" if prefix else ""
        return [
            {"name": path[len(folder):], "metadata": {"size": len(obj["content"]), "mimetype": obj["mimetype"]}}
            for path, obj in sorted(self.objects.get(bucket, {}).items())
            if path.startswith(folder)
        ][:limit]

    async def remove(self, bucket, paths):
        self._maybe_fail("remove", bucket)
        objects = self.objects.get(bucket, {})
        return [{"name": path} for path in paths if objects.pop(path, None) is not None]

    def public_url(self, bucket, path):
        return f"{self.url}/storage/v1/object/public/{bucket}/{path}"


@pytest.fixture
def fake_client() -> FakeSupabaseClient:
    return FakeSupabaseClient()


@pytest.fixture
def gateway(fake_client) -> PortfolioGateway:
    return PortfolioGateway(fake_client)


@pytest.fixture
def notifier() -> Notifier:
    return Notifier()


class StubContent:
    """Content generator stand-in returning canned answers"""

    mode = "stub"

    def __init__(self, draft: Optional[PortfolioDraft] = None, error: Optional[Exception] = None):
        self.draft = draft or PortfolioDraft(
            bio="Ada builds things.",
            skills=["Python", "React", "SQL"],
            projects=[
                ProjectDraft(title="Alpha", description="First project", tags=["Python"]),
                ProjectDraft(title="Beta", description="Second project", tags=["React"]),
                ProjectDraft(title="Gamma", description="Third project", tags=["SQL"]),
            ],
        )
        self.error = error
        self.calls: List[tuple] = []

    def _check(self):
        if self.error:
            raise self.error

    async def generate_bio(self, name, role, skills=None):
        self.calls.append(("bio", name, role))
        self._check()
        return f"{name} is a {role}."

    async def generate_project_description(self, title, tags=None):
        self.calls.append(("project-description", title))
        self._check()
        return f"{title} description"

    async def suggest_skills(self, role=None, skills=None):
        self.calls.append(("skills", role, tuple(skills or [])))
        self._check()
        return ["Python", "Docker", "Kubernetes"]

    async def generate_full_portfolio(self, name, role):
        self.calls.append(("portfolio", name, role))
        self._check()
        return self.draft


@pytest.fixture
def content() -> StubContent:
    return StubContent()


@pytest.fixture
def failing_content() -> StubContent:
    return StubContent(error=AIGenerationError(GENERATION_FAILED))


@pytest.fixture
def user_id() -> str:
    return USER_ID
