"""Tests for the dashboard form/mutation controllers."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from vizfolio.models import GatewayResult, PlanName, Profile, Project, Skill, SkillLevel
from vizfolio.services.ai_content import AIProxyClient
from vizfolio.services.controllers import (
    AIAssistantController,
    ProfileController,
    ProjectController,
    SkillController,
    ThemeController,
    parse_tags,
)
from vizfolio.services.state import CollectionState, DashboardState, ProfileState
from vizfolio.services.supabase_client import BackendError
from vizfolio.services.uploads import ImageFile

MB = 1024 * 1024


def _image(size: int, content_type: str = "image/png", filename: str = "photo.png") -> ImageFile:
    return ImageFile(filename=filename, content_type=content_type, content=b"x" * size)


@pytest.fixture
def projects_state(gateway, user_id):
    return CollectionState("projects", gateway.list_projects, user_id)


@pytest.fixture
def skills_state(gateway, user_id):
    return CollectionState("skills", gateway.list_skills, user_id)


@pytest.fixture
def profile_state(gateway, user_id):
    return ProfileState(gateway, user_id)


def test_parse_tags():
    assert parse_tags(" React, Node.js ,, SQL ") == ["React", "Node.js", "SQL"]
    assert parse_tags("") == []


class TestProfileController:
    @pytest.mark.asyncio
    async def test_requires_name_and_role(self, gateway, profile_state, notifier, fake_client):
        controller = ProfileController(gateway, profile_state, notifier=notifier)
        controller.form.name = "Ada"

        assert not await controller.submit()
        assert fake_client.calls == []
        assert notifier.last.message == "Name and role are required"

    @pytest.mark.asyncio
    async def test_first_submit_creates_profile_with_slug(self, gateway, profile_state, notifier, user_id):
        await profile_state.load()
        controller = ProfileController(gateway, profile_state, notifier=notifier)
        controller.form.name = "Ada Lovelace"
        controller.form.role = "Engineer"

        assert await controller.submit()

        assert profile_state.profile.id == user_id
        assert profile_state.profile.username == "ada-lovelace"
        assert profile_state.profile.theme_selected == "minimal"
        assert notifier.last.message == "Profile saved successfully!"

    @pytest.mark.asyncio
    async def test_later_submit_updates_profile(self, gateway, profile_state, notifier, user_id):
        await gateway.create_profile(Profile(id=user_id, name="Ada", role="Engineer", username="ada"))
        await profile_state.load()
        controller = ProfileController(gateway, profile_state, notifier=notifier)
        controller.form.bio = "Writes notes on engines."

        assert await controller.submit()

        assert profile_state.profile.bio == "Writes notes on engines."
        assert profile_state.profile.username == "ada"

    @pytest.mark.asyncio
    async def test_generate_bio_fills_form(self, gateway, profile_state, notifier, content):
        controller = ProfileController(gateway, profile_state, content=content, notifier=notifier)
        controller.form.name = "Ada"
        controller.form.role = "Engineer"

        assert await controller.generate_bio()

        assert controller.form.bio == "Ada is a Engineer."
        assert not controller.generating_bio

    @pytest.mark.asyncio
    async def test_generate_bio_failure_is_notified(self, gateway, profile_state, notifier, failing_content):
        controller = ProfileController(gateway, profile_state, content=failing_content, notifier=notifier)
        controller.form.name = "Ada"
        controller.form.role = "Engineer"

        assert not await controller.generate_bio()

        assert notifier.last.message == "Failed to generate bio"
        assert not controller.generating_bio

    @pytest.mark.asyncio
    async def test_oversize_avatar_rejected_before_storage(self, gateway, profile_state, notifier, fake_client):
        controller = ProfileController(gateway, profile_state, notifier=notifier)

        assert await controller.upload_avatar(_image(6 * MB)) is None

        assert fake_client.calls == []
        assert notifier.last.message == "File size must be less than 5MB"

    @pytest.mark.asyncio
    async def test_non_image_avatar_rejected_before_storage(self, gateway, profile_state, notifier, fake_client):
        controller = ProfileController(gateway, profile_state, notifier=notifier)
        document = _image(10, content_type="application/pdf", filename="cv.pdf")

        assert await controller.upload_avatar(document) is None

        assert fake_client.calls == []
        assert notifier.last.message == "Please select an image file"

    @pytest.mark.asyncio
    async def test_avatar_upload_sets_public_url(self, gateway, profile_state, notifier, fake_client, user_id):
        controller = ProfileController(gateway, profile_state, notifier=notifier)

        url = await controller.upload_avatar(_image(1024))

        assert url.startswith(f"https://demo.supabase.co/storage/v1/object/public/avatars/{user_id}/avatar/")
        assert url.endswith(".png")
        assert controller.form.avatar_url == url
        assert not controller.loading

    @pytest.mark.asyncio
    async def test_missing_bucket_gets_storage_message(self, gateway, profile_state, notifier, fake_client):
        fake_client.fail("upload", "avatars", BackendError("Bucket not found", status_code=404))
        controller = ProfileController(gateway, profile_state, notifier=notifier)

        assert await controller.upload_avatar(_image(1024)) is None

        assert notifier.last.message.startswith("Storage not configured")


class TestProjectController:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("title, description", [("", "Something"), ("Alpha", ""), ("   ", "  ")])
    async def test_required_fields_gate(self, gateway, projects_state, notifier, fake_client, title, description):
        controller = ProjectController(gateway, projects_state, notifier=notifier)
        controller.form.title = title
        controller.form.description = description

        assert not await controller.submit()

        assert fake_client.calls == []
        assert notifier.last.message == "Title and description are required"

    @pytest.mark.asyncio
    async def test_create_refreshes_and_resets_form(self, gateway, projects_state, notifier, user_id):
        controller = ProjectController(gateway, projects_state, notifier=notifier)
        controller.form.title = "Alpha"
        controller.form.description = "First project"
        controller.form.tags = "Python, FastAPI"

        assert await controller.submit()

        assert [(p.title, p.tags) for p in projects_state.items] == [("Alpha", ["Python", "FastAPI"])]
        assert controller.form.title == ""
        assert not controller.loading

    @pytest.mark.asyncio
    async def test_edit_updates_existing_project(self, gateway, projects_state, notifier, user_id):
        created = await gateway.create_project(Project(user_id=user_id, title="Alpha", description="d"))
        await projects_state.load()
        controller = ProjectController(gateway, projects_state, notifier=notifier)

        controller.start_edit(created.data)
        controller.form.title = "Alpha v2"
        assert await controller.submit()

        assert [p.title for p in projects_state.items] == ["Alpha v2"]
        assert controller.editing is None
        assert notifier.last.message == "Project updated successfully!"

    @pytest.mark.asyncio
    async def test_free_plan_limit_blocks_third_project(self, gateway, projects_state, profile_state, notifier,
                                                         fake_client, user_id):
        await gateway.create_profile(Profile(id=user_id, name="Ada", subscription_plan=PlanName.FREE))
        for title in ("One", "Two"):
            await gateway.create_project(Project(user_id=user_id, title=title, description="d"))
        await profile_state.load()
        await projects_state.load()
        controller = ProjectController(gateway, projects_state, profile_state=profile_state, notifier=notifier)
        controller.form.title = "Three"
        controller.form.description = "d"
        fake_client.calls.clear()

        assert not controller.can_create
        assert not await controller.submit()

        assert fake_client.calls == []
        assert "project limit (2)" in notifier.last.message

    @pytest.mark.asyncio
    async def test_delete_requires_confirmation(self, gateway, projects_state, notifier, fake_client, user_id):
        created = await gateway.create_project(Project(user_id=user_id, title="Alpha", description="d"))
        await projects_state.load()
        fake_client.calls.clear()

        declined = ProjectController(gateway, projects_state, notifier=notifier)
        assert not await declined.delete(created.data.id)
        assert fake_client.calls == []

        confirmed = ProjectController(gateway, projects_state, notifier=notifier, confirm=lambda _: True)
        assert await confirmed.delete(created.data.id)
        assert projects_state.items == []

    @pytest.mark.asyncio
    async def test_generate_description_needs_title(self, gateway, projects_state, notifier, content):
        controller = ProjectController(gateway, projects_state, content=content, notifier=notifier)

        assert not await controller.generate_description()
        assert content.calls == []

        controller.form.title = "Alpha"
        assert await controller.generate_description()
        assert controller.form.description == "Alpha description"

    @pytest.mark.asyncio
    async def test_project_image_limit_is_ten_megabytes(self, gateway, projects_state, notifier, fake_client):
        controller = ProjectController(gateway, projects_state, notifier=notifier)

        assert await controller.upload_image(_image(11 * MB)) is None
        assert fake_client.calls == []
        assert notifier.last.message == "File size must be less than 10MB"

        assert await controller.upload_image(_image(6 * MB)) is not None
        assert controller.form.image_url


class TestSkillController:
    @pytest.mark.asyncio
    async def test_duplicate_rejected_case_insensitively(self, gateway, skills_state, notifier, fake_client, user_id):
        await gateway.create_skill(Skill(user_id=user_id, name="react"))
        await skills_state.load()
        fake_client.calls.clear()
        controller = SkillController(gateway, skills_state, notifier=notifier)
        controller.form.name = "React"

        assert not await controller.submit()

        assert fake_client.calls == []
        assert notifier.last.message == "This skill already exists"

    @pytest.mark.asyncio
    async def test_add_skill(self, gateway, skills_state, notifier):
        controller = SkillController(gateway, skills_state, notifier=notifier)
        controller.form.name = "Go"
        controller.form.level = "expert"

        assert await controller.submit()

        assert [(s.name, s.level) for s in skills_state.items] == [("Go", SkillLevel.EXPERT)]
        assert controller.form.name == ""

    @pytest.mark.asyncio
    async def test_invalid_level_rejected(self, gateway, skills_state, notifier, fake_client):
        controller = SkillController(gateway, skills_state, notifier=notifier)
        controller.form.name = "Go"
        controller.form.level = "guru"

        assert not await controller.submit()
        assert fake_client.calls == []

    @pytest.mark.asyncio
    async def test_suggestions_skip_existing_skills(self, gateway, skills_state, notifier, content, user_id):
        await gateway.create_skill(Skill(user_id=user_id, name="python"))
        await skills_state.load()
        controller = SkillController(gateway, skills_state, content=content, notifier=notifier)

        assert await controller.generate_suggestions()
        assert controller.suggestions == ["Docker", "Kubernetes"]
        assert content.calls == [("skills", None, ("python",))]

        assert await controller.add_suggested_skill("Docker")
        assert controller.suggestions == ["Kubernetes"]
        assert {s.name for s in skills_state.items} == {"python", "Docker"}

    @pytest.mark.asyncio
    async def test_suggestions_need_existing_skills(self, gateway, skills_state, notifier, content):
        controller = SkillController(gateway, skills_state, content=content, notifier=notifier)

        assert not await controller.generate_suggestions()
        assert content.calls == []


class TestProxyBackedGeneration:
    """Bad proxy replies end as notifications, never as exceptions"""

    def _proxy(self, response):
        http = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: response))
        return AIProxyClient(base_url="http://proxy.test", http_client=http)

    @pytest.mark.asyncio
    async def test_html_reply_to_bio(self, gateway, profile_state, notifier):
        content = self._proxy(httpx.Response(200, text="<html>Service unavailable</html>"))
        controller = ProfileController(gateway, profile_state, content=content, notifier=notifier)
        controller.form.name = "Ada"
        controller.form.role = "Engineer"

        assert not await controller.generate_bio()

        assert notifier.last.message == "Failed to generate bio"
        assert controller.form.bio == ""
        assert not controller.generating_bio

    @pytest.mark.asyncio
    async def test_reply_without_description(self, gateway, projects_state, notifier):
        content = self._proxy(httpx.Response(200, json={"success": True}))
        controller = ProjectController(gateway, projects_state, content=content, notifier=notifier)
        controller.form.title = "Alpha"

        assert not await controller.generate_description()

        assert notifier.last.message == "Failed to generate description"
        assert not controller.generating_description

    @pytest.mark.asyncio
    async def test_reply_without_skills(self, gateway, skills_state, notifier, user_id):
        await gateway.create_skill(Skill(user_id=user_id, name="Go"))
        await skills_state.load()
        content = self._proxy(httpx.Response(200, json={"success": True}))
        controller = SkillController(gateway, skills_state, content=content, notifier=notifier)

        assert not await controller.generate_suggestions()

        assert notifier.last.message == "Failed to generate suggestions"
        assert controller.suggestions == []


class TestSignedOut:
    """Without a user every write stops at a notification"""

    @pytest.mark.asyncio
    async def test_profile_submit(self, gateway, fake_client, notifier):
        controller = ProfileController(gateway, ProfileState(gateway, None), notifier=notifier)
        controller.form.name = "Ada"
        controller.form.role = "Engineer"

        assert not await controller.submit()

        assert fake_client.calls == []
        assert notifier.last.message == "Please sign in"

    @pytest.mark.asyncio
    async def test_project_submit(self, gateway, fake_client, notifier):
        state = CollectionState("projects", gateway.list_projects, None)
        controller = ProjectController(gateway, state, notifier=notifier)
        controller.form.title = "Alpha"
        controller.form.description = "First project"

        assert not await controller.submit()

        assert fake_client.calls == []
        assert notifier.last.message == "Please sign in"
        assert not controller.loading

    @pytest.mark.asyncio
    async def test_skill_submit_and_suggestion(self, gateway, fake_client, notifier):
        state = CollectionState("skills", gateway.list_skills, None)
        controller = SkillController(gateway, state, notifier=notifier)
        controller.form.name = "Go"

        assert not await controller.submit()
        assert not await controller.add_suggested_skill("Rust")

        assert fake_client.calls == []
        assert notifier.errors() == ["Please sign in", "Please sign in"]

    @pytest.mark.asyncio
    async def test_avatar_upload(self, gateway, fake_client, notifier):
        controller = ProfileController(gateway, ProfileState(gateway, None), notifier=notifier)

        assert await controller.upload_avatar(_image(1024)) is None

        assert fake_client.calls == []
        assert notifier.last.message == "Please sign in"


class TestLoadingFlagRestored:
    """``loading`` goes back to False whichever way the gateway call ends"""

    def _controller(self, gateway_call):
        gateway = SimpleNamespace(delete_skill=gateway_call)
        state = SimpleNamespace(user_id="user-1", items=[], refresh=AsyncMock(return_value=True))
        return SkillController(gateway, state, confirm=lambda _: True)

    @pytest.mark.asyncio
    async def test_resolves(self):
        controller = self._controller(AsyncMock(return_value=GatewayResult.success("s1")))
        assert await controller.delete("s1")
        assert not controller.loading
        controller.state.refresh.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_returns_error(self):
        controller = self._controller(AsyncMock(return_value=GatewayResult.failure(BackendError("denied"))))
        assert not await controller.delete("s1")
        assert not controller.loading
        controller.state.refresh.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_rejects(self):
        controller = self._controller(AsyncMock(side_effect=RuntimeError("network down")))
        assert not await controller.delete("s1")
        assert not controller.loading

    @pytest.mark.asyncio
    async def test_throws_synchronously(self):
        controller = self._controller(Mock(side_effect=TypeError("bad call")))
        assert not await controller.delete("s1")
        assert not controller.loading
        assert controller.notifier.last.message == "Failed to delete skill"


class TestThemeController:
    @pytest.mark.asyncio
    async def test_select_theme(self, gateway, profile_state, notifier, user_id):
        await gateway.create_profile(Profile(id=user_id, name="Ada", username="ada"))
        await profile_state.load()
        controller = ThemeController(gateway, profile_state, notifier=notifier)

        assert await controller.select_theme("dark")

        assert controller.selected_theme == "dark"
        assert controller.preview_url("creative") == "https://vizfolio.com/u/ada?theme=creative"

    @pytest.mark.asyncio
    async def test_unknown_theme_and_missing_profile(self, gateway, profile_state, notifier, fake_client):
        await profile_state.load()
        controller = ThemeController(gateway, profile_state, notifier=notifier)

        assert not await controller.select_theme("dark")
        assert notifier.last.message == "Please complete your profile first"
        assert controller.selected_theme == "minimal"
        assert controller.preview_url("dark") is None


class TestAIAssistantController:
    @pytest.mark.asyncio
    async def test_generate_portfolio_writes_everything(self, gateway, notifier, content, user_id):
        dashboard = DashboardState(gateway, user_id)
        await dashboard.load()
        controller = AIAssistantController(gateway, dashboard, content, notifier=notifier)

        result = await controller.generate_portfolio("Ada", "Engineer")

        assert result.succeeded
        assert dashboard.profile.profile.bio == "Ada builds things."
        assert len(dashboard.skills) == 3
        assert len(dashboard.projects) == 3
        assert notifier.last.message == "AI portfolio generation completed!"
        assert not controller.generating

    @pytest.mark.asyncio
    async def test_generation_failure_writes_nothing(self, gateway, notifier, failing_content, fake_client, user_id):
        dashboard = DashboardState(gateway, user_id)
        controller = AIAssistantController(gateway, dashboard, failing_content, notifier=notifier)

        assert await controller.generate_portfolio("Ada", "Engineer") is None

        assert not any(method in ("insert", "update") for method, _ in fake_client.calls)
        assert notifier.last.message == "Failed to generate portfolio"

    @pytest.mark.asyncio
    async def test_partial_then_resume(self, gateway, notifier, content, fake_client, user_id):
        dashboard = DashboardState(gateway, user_id)
        await dashboard.load()
        controller = AIAssistantController(gateway, dashboard, content, notifier=notifier)
        fake_client.fail("insert", "projects")

        result = await controller.generate_portfolio("Ada", "Engineer")

        assert result.partial
        assert "Add project Alpha" in notifier.last.message
        assert len(dashboard.skills) == 3
        assert len(dashboard.projects) == 0

        resumed = await controller.resume()
        assert resumed.succeeded
        assert len(dashboard.projects) == 3

    @pytest.mark.asyncio
    async def test_rollback_removes_written_rows(self, gateway, notifier, content, fake_client, user_id):
        dashboard = DashboardState(gateway, user_id)
        await dashboard.load()
        controller = AIAssistantController(gateway, dashboard, content, notifier=notifier)
        fake_client.fail("insert", "projects")
        await controller.generate_portfolio("Ada", "Engineer")

        result = await controller.rollback()

        assert result.rolled_back
        assert dashboard.profile.profile is None
        assert len(dashboard.skills) == 0
        assert notifier.last.message == "Generated portfolio content removed"

    @pytest.mark.asyncio
    async def test_requires_name_and_role(self, gateway, notifier, content, user_id):
        controller = AIAssistantController(gateway, DashboardState(gateway, user_id), content, notifier=notifier)
        assert await controller.generate_portfolio("Ada", "") is None
        assert content.calls == []
