"""
Form/mutation controllers for the dashboard tabs.

Each controller validates its form locally, optionally asks the AI content
generator to pre-fill a field, calls the gateway and, on success, refreshes
the tab's state holder. ``loading`` is set for the duration of every
mutation and is reset in all paths, so the submit control is never left
disabled. Failures never escape a controller; they become notifications.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from vizfolio.config import settings
from vizfolio.logging_config import logger
from vizfolio.models import GatewayResult, PlanName, Profile, Project, Skill, SkillLevel, SocialPlatform
from vizfolio.services.ai_content import AIGenerationError
from vizfolio.services.bootstrap import BootstrapResult, PortfolioBootstrapper
from vizfolio.services.gateway import PortfolioGateway
from vizfolio.services.notifications import Notifier
from vizfolio.services.state import CollectionState, DashboardState, ProfileState
from vizfolio.services.subscription import can_create_portfolio, get_portfolio_limit
from vizfolio.services.themes import PORTFOLIO_THEMES, portfolio_url, slugify_username
from vizfolio.services.uploads import ImageFile, build_object_path, validate_avatar, validate_project_image

ConfirmCallback = Callable[[str], bool]


def _decline(message: str) -> bool:
    logger.warning("No confirmation handler configured, declining", prompt=message)
    return False


def parse_tags(text: str) -> List[str]:
    return [tag.strip() for tag in (text or "").split(",") if tag.strip()]


class MutationController:
    """Shared submit/upload plumbing for the tab controllers"""

    def __init__(
        self,
        gateway: PortfolioGateway,
        state,
        notifier: Optional[Notifier] = None,
        confirm: Optional[ConfirmCallback] = None
    ):
        self.gateway = gateway
        self.state = state
        self.notifier = notifier or Notifier()
        self.confirm = confirm or _decline
        self.loading = False

    @property
    def user_id(self) -> Optional[str]:
        return self.state.user_id

    def _signed_in(self) -> bool:
        if not self.user_id:
            self.notifier.error("Please sign in")
            return False
        return True

    async def _mutate(
        self,
        mutation: Callable[[], Awaitable[GatewayResult]],
        success_message: str,
        failure_message: str,
        on_success: Optional[Callable[[Any], None]] = None
    ) -> bool:
        self.loading = True
        try:
            result = await mutation()
            if not result.ok:
                self.notifier.error(failure_message, result.error)
                return False
            if on_success:
                on_success(result.data)
            self.notifier.success(success_message)
            await self.state.refresh()
            return True
        except Exception as e:
            self.notifier.error(failure_message, e)
            return False
        finally:
            self.loading = False

    async def _upload_image(
        self,
        file: ImageFile,
        validate: Callable[[ImageFile], Optional[str]],
        bucket: str,
        folder: str,
        success_message: str
    ) -> Optional[str]:
        """Validate locally, upload, and return the public URL (None on any failure)"""
        if not self._signed_in():
            return None
        problem = validate(file)
        if problem:
            self.notifier.error(problem)
            return None

        self.loading = True
        try:
            path = build_object_path(self.user_id, folder, file)
            result = await self.gateway.upload_file(file.content, bucket, path, file.content_type)
            if not result.ok:
                message = str(getattr(result.error, "message", result.error))
                if "Bucket not found" in message:
                    self.notifier.error(
                        "Storage not configured. Please use image URL or contact support.",
                        result.error
                    )
                else:
                    self.notifier.error(f"Upload failed: {message}", result.error)
                return None
            self.notifier.success(success_message)
            return result.data.public_url
        except Exception as e:
            self.notifier.error("Failed to upload image", e)
            return None
        finally:
            self.loading = False


# ----------------------------------------------------------------------
# Profile tab
# ----------------------------------------------------------------------

class ProfileForm(BaseModel):
    name: str = ""
    role: str = ""
    bio: str = ""
    username: str = ""
    avatar_url: str = ""
    social_links: Dict[SocialPlatform, str] = Field(default_factory=dict)

    @classmethod
    def from_profile(cls, profile: Optional[Profile]) -> "ProfileForm":
        if profile is None:
            return cls()
        return cls(
            name=profile.name,
            role=profile.role,
            bio=profile.bio,
            username=profile.username,
            avatar_url=profile.avatar_url,
            social_links=dict(profile.social_links),
        )


class ProfileController(MutationController):
    def __init__(
        self,
        gateway: PortfolioGateway,
        state: ProfileState,
        content=None,
        notifier: Optional[Notifier] = None
    ):
        super().__init__(gateway, state, notifier)
        self.content = content
        self.form = ProfileForm.from_profile(state.profile)
        self.generating_bio = False

    def load_form(self) -> None:
        self.form = ProfileForm.from_profile(self.state.profile)

    async def submit(self) -> bool:
        if not self._signed_in():
            return False
        form = self.form
        if not form.name.strip() or not form.role.strip():
            self.notifier.error("Name and role are required")
            return False

        fields = {
            "name": form.name.strip(),
            "role": form.role.strip(),
            "bio": form.bio,
            "username": form.username.strip() or slugify_username(form.name),
            "avatar_url": form.avatar_url,
            "social_links": dict(form.social_links),
        }
        existing = self.state.profile

        if existing:
            async def mutation():
                return await self.gateway.update_profile(self.user_id, fields)
        else:
            profile = Profile(id=self.user_id, theme_selected=settings.DEFAULT_THEME, **fields)

            async def mutation():
                return await self.gateway.create_profile(profile)

        saved = await self._mutate(mutation, "Profile saved successfully!", "Failed to save profile")
        if saved:
            self.load_form()
        return saved

    async def generate_bio(self) -> bool:
        if not self.form.name or not self.form.role:
            self.notifier.error("Please enter your name and role first")
            return False
        if self.content is None:
            self.notifier.error("AI assistant is not available")
            return False

        self.generating_bio = True
        try:
            self.form.bio = await self.content.generate_bio(self.form.name, self.form.role)
            self.notifier.success("Bio generated successfully!")
            return True
        except Exception as e:
            self.notifier.error("Failed to generate bio", e)
            return False
        finally:
            self.generating_bio = False

    async def upload_avatar(self, file: ImageFile) -> Optional[str]:
        url = await self._upload_image(
            file,
            validate_avatar,
            settings.AVATAR_BUCKET,
            "avatar",
            "Avatar uploaded successfully!"
        )
        if url:
            self.form.avatar_url = url
        return url


# ----------------------------------------------------------------------
# Projects tab
# ----------------------------------------------------------------------

class ProjectForm(BaseModel):
    title: str = ""
    description: str = ""
    tags: str = ""  # comma separated
    repo_url: str = ""
    live_url: str = ""
    image_url: str = ""


class ProjectController(MutationController):
    def __init__(
        self,
        gateway: PortfolioGateway,
        state: CollectionState,
        profile_state: Optional[ProfileState] = None,
        content=None,
        notifier: Optional[Notifier] = None,
        confirm: Optional[ConfirmCallback] = None
    ):
        super().__init__(gateway, state, notifier, confirm)
        self.profile_state = profile_state
        self.content = content
        self.form = ProjectForm()
        self.editing: Optional[Project] = None
        self.generating_description = False

    @property
    def subscription_plan(self) -> PlanName:
        profile = self.profile_state.profile if self.profile_state else None
        return profile.subscription_plan if profile else PlanName.FREE

    @property
    def portfolio_limit(self) -> Optional[int]:
        return get_portfolio_limit(self.subscription_plan)

    @property
    def can_create(self) -> bool:
        return can_create_portfolio(self.subscription_plan, len(self.state.items))

    def reset_form(self) -> None:
        self.form = ProjectForm()
        self.editing = None

    def start_edit(self, project: Project) -> None:
        self.form = ProjectForm(
            title=project.title,
            description=project.description,
            tags=", ".join(project.tags),
            repo_url=project.repo_url or "",
            live_url=project.live_url or "",
            image_url=project.image_url or "",
        )
        self.editing = project

    async def submit(self) -> bool:
        if not self._signed_in():
            return False
        form = self.form
        if not form.title.strip() or not form.description.strip():
            self.notifier.error("Title and description are required")
            return False

        if self.editing is None and not self.can_create:
            limit = self.portfolio_limit
            self.notifier.error(
                f"You've reached your project limit ({'unlimited' if limit is None else limit}). "
                "Please upgrade your plan."
            )
            return False

        project = Project(
            user_id=self.user_id,
            title=form.title.strip(),
            description=form.description.strip(),
            tags=parse_tags(form.tags),
            repo_url=form.repo_url or None,
            live_url=form.live_url or None,
            image_url=form.image_url or None,
        )
        editing = self.editing

        if editing is not None:
            async def mutation():
                changes = project.model_dump(exclude={"id", "user_id", "created_at", "updated_at"})
                return await self.gateway.update_project(editing.id, changes)
            success_message = "Project updated successfully!"
        else:
            async def mutation():
                return await self.gateway.create_project(project)
            success_message = "Project created successfully!"

        return await self._mutate(
            mutation,
            success_message,
            "Failed to save project",
            on_success=lambda _: self.reset_form()
        )

    async def delete(self, project_id: str) -> bool:
        if not self.confirm("Are you sure you want to delete this project? This action cannot be undone."):
            return False
        return await self._mutate(
            lambda: self.gateway.delete_project(project_id),
            "Project deleted successfully!",
            "Failed to delete project"
        )

    async def generate_description(self) -> bool:
        if not self.form.title:
            self.notifier.error("Please enter a project title first")
            return False
        if self.content is None:
            self.notifier.error("AI assistant is not available")
            return False

        self.generating_description = True
        try:
            self.form.description = await self.content.generate_project_description(
                self.form.title,
                parse_tags(self.form.tags)
            )
            self.notifier.success("Description generated successfully!")
            return True
        except Exception as e:
            self.notifier.error("Failed to generate description", e)
            return False
        finally:
            self.generating_description = False

    async def upload_image(self, file: ImageFile) -> Optional[str]:
        url = await self._upload_image(
            file,
            validate_project_image,
            settings.PROJECT_IMAGE_BUCKET,
            "projects",
            "Image uploaded successfully!"
        )
        if url:
            self.form.image_url = url
        return url


# ----------------------------------------------------------------------
# Skills tab
# ----------------------------------------------------------------------

class SkillForm(BaseModel):
    name: str = ""
    level: str = SkillLevel.INTERMEDIATE.value


class SkillController(MutationController):
    def __init__(
        self,
        gateway: PortfolioGateway,
        state: CollectionState,
        content=None,
        notifier: Optional[Notifier] = None,
        confirm: Optional[ConfirmCallback] = None
    ):
        super().__init__(gateway, state, notifier, confirm)
        self.content = content
        self.form = SkillForm()
        self.suggestions: List[str] = []
        self.generating_suggestions = False

    def has_skill(self, name: str) -> bool:
        """Case-insensitive match against the current (possibly stale) snapshot"""
        wanted = name.strip().lower()
        return any(skill.name.lower() == wanted for skill in self.state.items)

    def reset_form(self) -> None:
        self.form = SkillForm()
        self.suggestions = []

    async def _add(self, name: str, level: SkillLevel, success_message: str,
                   on_success: Optional[Callable[[Any], None]] = None) -> bool:
        if not self._signed_in():
            return False
        skill = Skill(user_id=self.user_id, name=name, level=level)
        return await self._mutate(
            lambda: self.gateway.create_skill(skill),
            success_message,
            "Failed to add skill",
            on_success=on_success
        )

    async def submit(self) -> bool:
        name = self.form.name.strip()
        if not name:
            self.notifier.error("Skill name is required")
            return False
        try:
            level = SkillLevel(self.form.level)
        except ValueError:
            self.notifier.error("Please choose beginner, intermediate or expert")
            return False
        if self.has_skill(name):
            self.notifier.error("This skill already exists")
            return False

        return await self._add(name, level, "Skill added successfully!", on_success=lambda _: self.reset_form())

    async def delete(self, skill_id: str) -> bool:
        if not self.confirm("Are you sure you want to delete this skill?"):
            return False
        return await self._mutate(
            lambda: self.gateway.delete_skill(skill_id),
            "Skill deleted successfully!",
            "Failed to delete skill"
        )

    async def generate_suggestions(self) -> bool:
        if not self.state.items:
            self.notifier.error("Add a few skills first to get personalized suggestions")
            return False
        if self.content is None:
            self.notifier.error("AI assistant is not available")
            return False

        self.generating_suggestions = True
        try:
            existing = [skill.name for skill in self.state.items]
            suggestions = await self.content.suggest_skills(skills=existing)
            self.suggestions = [s for s in suggestions if not self.has_skill(s)]
            self.notifier.success("Skill suggestions generated!")
            return True
        except Exception as e:
            self.notifier.error("Failed to generate suggestions", e)
            return False
        finally:
            self.generating_suggestions = False

    async def add_suggested_skill(self, name: str, level: SkillLevel = SkillLevel.INTERMEDIATE) -> bool:
        if self.has_skill(name):
            self.notifier.error("This skill already exists")
            return False

        def drop_suggestion(_):
            self.suggestions = [s for s in self.suggestions if s != name]

        return await self._add(name, level, f"{name} added successfully!", on_success=drop_suggestion)


# ----------------------------------------------------------------------
# Themes tab
# ----------------------------------------------------------------------

class ThemeController(MutationController):
    def __init__(self, gateway: PortfolioGateway, state: ProfileState, notifier: Optional[Notifier] = None):
        super().__init__(gateway, state, notifier)

    @property
    def selected_theme(self) -> str:
        profile = self.state.profile
        return profile.theme_selected if profile else settings.DEFAULT_THEME

    async def select_theme(self, theme_id: str) -> bool:
        if self.state.profile is None:
            self.notifier.error("Please complete your profile first")
            return False
        if theme_id not in PORTFOLIO_THEMES:
            self.notifier.error(f"Unknown theme: {theme_id}")
            return False
        return await self._mutate(
            lambda: self.gateway.update_profile(self.user_id, {"theme_selected": theme_id}),
            "Theme updated successfully!",
            "Failed to update theme"
        )

    def preview_url(self, theme_id: str) -> Optional[str]:
        profile = self.state.profile
        if profile is None or not profile.username:
            return None
        return portfolio_url(profile.username, theme_id)


# ----------------------------------------------------------------------
# AI assistant tab
# ----------------------------------------------------------------------

class AIAssistantController:
    """Runs the portfolio bootstrap and reports its outcome"""

    def __init__(
        self,
        gateway: PortfolioGateway,
        dashboard: DashboardState,
        content,
        notifier: Optional[Notifier] = None
    ):
        self.dashboard = dashboard
        self.notifier = notifier or Notifier()
        self.bootstrapper = PortfolioBootstrapper(gateway, content, dashboard.user_id)
        self.generating = False
        self.last_result: Optional[BootstrapResult] = None

    def _report(self, result: BootstrapResult) -> None:
        if result.succeeded:
            self.notifier.success("AI portfolio generation completed!")
        else:
            failed = result.failed[0].label if result.failed else "unknown step"
            self.notifier.error(
                f"Portfolio generation stopped at '{failed}'. "
                f"{len(result.completed)} of {len(result.steps)} steps saved; resume or roll back.",
                result.failed[0].error if result.failed else None
            )

    async def _guarded(self, work: Callable[[], Awaitable[BootstrapResult]]) -> Optional[BootstrapResult]:
        self.generating = True
        try:
            self.last_result = await work()
            self._report(self.last_result)
            await self.dashboard.refresh_all()
            return self.last_result
        except AIGenerationError as e:
            self.notifier.error("Failed to generate portfolio", e)
            return None
        except Exception as e:
            self.notifier.error("Failed to generate portfolio", e)
            await self.dashboard.refresh_all()
            return None
        finally:
            self.generating = False

    async def generate_portfolio(self, name: str, role: str) -> Optional[BootstrapResult]:
        if not name or not role:
            self.notifier.error("Please provide at least your name and role")
            return None
        return await self._guarded(lambda: self.bootstrapper.bootstrap(
            name,
            role,
            profile=self.dashboard.profile.profile,
            existing_skills=self.dashboard.skills.items,
            existing_project_count=len(self.dashboard.projects.items),
        ))

    async def resume(self) -> Optional[BootstrapResult]:
        if self.last_result is None or self.last_result.succeeded:
            return self.last_result
        return await self._guarded(lambda: self.bootstrapper.resume(self.last_result))

    async def rollback(self) -> Optional[BootstrapResult]:
        if self.last_result is None:
            return None
        self.generating = True
        try:
            result = await self.bootstrapper.rollback(self.last_result)
            if result.completed:
                self.notifier.error("Some generated items could not be removed")
            else:
                self.notifier.success("Generated portfolio content removed")
            return result
        finally:
            self.generating = False
            await self.dashboard.refresh_all()
