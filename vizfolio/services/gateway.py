"""
Remote data gateway for profiles, projects, skills and storage assets.

Every call returns a ``GatewayResult``: ``data`` on success, ``error`` with
the upstream failure object on failure. Nothing here retries or raises for
failures; unexpected exceptions are normalised into the same shape.

Rows coming back from Supabase are passed through adapters so older
column layouts (``name`` vs ``skill_name``, flat social columns vs a
``social_links`` map, missing subscription columns) all land on the
canonical models in ``vizfolio.models``.
"""
from typing import Any, Awaitable, Callable, Dict, List, Optional

from vizfolio.config import settings, Settings
from vizfolio.logging_config import logger
from vizfolio.models import (
    Asset,
    GatewayResult,
    PlanName,
    Profile,
    Project,
    Skill,
    SkillLevel,
    SocialPlatform,
    SubscriptionStatus,
)
from vizfolio.services.supabase_client import BackendError, SupabaseClient


# ----------------------------------------------------------------------
# Row adapters
# ----------------------------------------------------------------------

def profile_from_row(row: Dict[str, Any]) -> Profile:
    """Normalise a profiles row into a Profile"""
    links = row.get("social_links") or {}
    if not isinstance(links, dict):
        links = {}
    social_links = {}
    for platform in SocialPlatform:
        url = links.get(platform.value) or row.get(platform.value)
        if url:
            social_links[platform] = url

    plan = row.get("subscription_plan") or PlanName.FREE.value
    if plan not in {p.value for p in PlanName}:
        plan = PlanName.FREE.value
    status = row.get("subscription_status") or SubscriptionStatus.ACTIVE.value
    if status not in {s.value for s in SubscriptionStatus}:
        status = SubscriptionStatus.ACTIVE.value

    return Profile(
        id=str(row.get("id") or row.get("user_id")),
        name=row.get("name") or row.get("full_name") or "",
        role=row.get("role") or "",
        bio=row.get("bio") or "",
        avatar_url=row.get("avatar_url") or "",
        social_links=social_links,
        theme_selected=row.get("theme_selected") or row.get("theme") or settings.DEFAULT_THEME,
        username=row.get("username") or "",
        subscription_plan=plan,
        subscription_status=status,
        subscription_ends_at=row.get("subscription_ends_at"),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def profile_to_row(profile: Profile) -> Dict[str, Any]:
    row = profile.model_dump(mode="json", exclude={"created_at", "updated_at"})
    row["social_links"] = {p.value: url for p, url in profile.social_links.items()}
    return row


def profile_changes_to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a partial profile update into storage columns"""
    row = dict(changes)
    if "social_links" in row:
        row["social_links"] = {
            (p.value if isinstance(p, SocialPlatform) else str(p)): url
            for p, url in (row["social_links"] or {}).items()
            if url
        }
    for key in ("subscription_plan", "subscription_status"):
        if key in row and hasattr(row[key], "value"):
            row[key] = row[key].value
    return row


def project_from_row(row: Dict[str, Any]) -> Project:
    tags = row.get("tags")
    if tags is None:
        tags = row.get("technologies") or []
    return Project(
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row.get("user_id") or row.get("profile_id") or ""),
        title=row.get("title") or "",
        description=row.get("description") or "",
        tags=list(tags),
        image_url=row.get("image_url") or None,
        live_url=row.get("live_url") or row.get("demo_url") or None,
        repo_url=row.get("repo_url") or row.get("github_url") or None,
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def project_to_row(project: Project) -> Dict[str, Any]:
    return project.model_dump(mode="json", exclude={"id", "created_at", "updated_at"})


_PROJECT_COLUMN_ALIASES = {
    "technologies": "tags",
    "demo_url": "live_url",
    "github_url": "repo_url",
    "profile_id": "user_id",
}


def project_changes_to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    """Translate a partial project update into storage columns"""
    row = {}
    for key, value in changes.items():
        key = _PROJECT_COLUMN_ALIASES.get(key, key)
        if key in ("id", "user_id", "created_at", "updated_at"):
            continue
        if key in ("live_url", "repo_url", "image_url"):
            value = value or None
        row[key] = value
    if "tags" in row:
        row["tags"] = [str(tag).strip() for tag in row["tags"] or [] if str(tag).strip()]
    return row


def skill_from_row(row: Dict[str, Any]) -> Skill:
    level = row.get("level") or SkillLevel.INTERMEDIATE.value
    if level not in {lvl.value for lvl in SkillLevel}:
        level = SkillLevel.INTERMEDIATE.value
    return Skill(
        id=str(row["id"]) if row.get("id") is not None else None,
        user_id=str(row.get("user_id") or ""),
        name=row.get("skill_name") or row.get("name") or "",
        level=level,
        created_at=row.get("created_at"),
    )


def skill_to_row(skill: Skill) -> Dict[str, Any]:
    return {
        "user_id": skill.user_id,
        "skill_name": skill.name,
        "level": skill.level.value,
    }


def skill_changes_to_row(changes: Dict[str, Any]) -> Dict[str, Any]:
    row = dict(changes)
    if "name" in row:
        row["skill_name"] = row.pop("name")
    if "level" in row and hasattr(row["level"], "value"):
        row["level"] = row["level"].value
    return row


# ----------------------------------------------------------------------
# Gateway
# ----------------------------------------------------------------------

class PortfolioGateway:
    """CRUD gateway over an injected SupabaseClient"""

    def __init__(self, client: SupabaseClient, config: Settings = settings):
        self.client = client
        self.config = config

    async def _call(
        self,
        operation: str,
        call: Callable[[], Awaitable[Any]]
    ) -> GatewayResult:
        try:
            data = await call()
        except BackendError as e:
            logger.warning(f"Gateway {operation} failed", error=e.message, status_code=e.status_code)
            return GatewayResult.failure(e)
        except Exception as e:
            logger.error(f"Gateway {operation} raised unexpectedly", error=str(e), exc_info=True)
            return GatewayResult.failure(e)
        return GatewayResult.success(data)

    # Profiles ---------------------------------------------------------

    async def list_profiles(self, username: Optional[str] = None) -> GatewayResult[List[Profile]]:
        """List profiles, optionally only the one published under ``username``"""
        async def call():
            filters = {"username": username} if username else None
            rows = await self.client.select(self.config.PROFILES_TABLE, filters=filters)
            return [profile_from_row(row) for row in rows]
        return await self._call("list_profiles", call)

    async def get_profile(self, user_id: str) -> GatewayResult[Profile]:
        async def call():
            row = await self.client.select_one(self.config.PROFILES_TABLE, {"id": user_id})
            return profile_from_row(row)
        return await self._call("get_profile", call)

    async def get_profile_by_username(self, username: str) -> GatewayResult[Profile]:
        async def call():
            row = await self.client.select_one(self.config.PROFILES_TABLE, {"username": username})
            return profile_from_row(row)
        return await self._call("get_profile_by_username", call)

    async def create_profile(self, profile: Profile) -> GatewayResult[Profile]:
        async def call():
            row = await self.client.insert(self.config.PROFILES_TABLE, profile_to_row(profile))
            return profile_from_row(row)
        return await self._call("create_profile", call)

    async def update_profile(self, user_id: str, changes: Dict[str, Any]) -> GatewayResult[Profile]:
        async def call():
            row = await self.client.update(
                self.config.PROFILES_TABLE,
                {"id": user_id},
                profile_changes_to_row(changes)
            )
            return profile_from_row(row)
        return await self._call("update_profile", call)

    async def delete_profile(self, user_id: str) -> GatewayResult[str]:
        async def call():
            await self.client.delete(self.config.PROFILES_TABLE, {"id": user_id})
            return user_id
        return await self._call("delete_profile", call)

    # Projects ---------------------------------------------------------

    async def list_projects(self, user_id: str) -> GatewayResult[List[Project]]:
        async def call():
            rows = await self.client.select(
                self.config.PROJECTS_TABLE,
                filters={"user_id": user_id},
                order="created_at.desc"
            )
            return [project_from_row(row) for row in rows]
        return await self._call("list_projects", call)

    async def get_project(self, project_id: str) -> GatewayResult[Project]:
        async def call():
            row = await self.client.select_one(self.config.PROJECTS_TABLE, {"id": project_id})
            return project_from_row(row)
        return await self._call("get_project", call)

    async def create_project(self, project: Project) -> GatewayResult[Project]:
        async def call():
            row = await self.client.insert(self.config.PROJECTS_TABLE, project_to_row(project))
            return project_from_row(row)
        return await self._call("create_project", call)

    async def update_project(self, project_id: str, changes: Dict[str, Any]) -> GatewayResult[Project]:
        async def call():
            row = await self.client.update(
                self.config.PROJECTS_TABLE,
                {"id": project_id},
                project_changes_to_row(changes)
            )
            return project_from_row(row)
        return await self._call("update_project", call)

    async def delete_project(self, project_id: str) -> GatewayResult[str]:
        async def call():
            await self.client.delete(self.config.PROJECTS_TABLE, {"id": project_id})
            return project_id
        return await self._call("delete_project", call)

    # Skills -----------------------------------------------------------

    async def list_skills(self, user_id: str) -> GatewayResult[List[Skill]]:
        async def call():
            rows = await self.client.select(
                self.config.SKILLS_TABLE,
                filters={"user_id": user_id},
                order="skill_name.asc"
            )
            return [skill_from_row(row) for row in rows]
        return await self._call("list_skills", call)

    async def get_skill(self, skill_id: str) -> GatewayResult[Skill]:
        async def call():
            row = await self.client.select_one(self.config.SKILLS_TABLE, {"id": skill_id})
            return skill_from_row(row)
        return await self._call("get_skill", call)

    async def create_skill(self, skill: Skill) -> GatewayResult[Skill]:
        async def call():
            row = await self.client.insert(self.config.SKILLS_TABLE, skill_to_row(skill))
            return skill_from_row(row)
        return await self._call("create_skill", call)

    async def update_skill(self, skill_id: str, changes: Dict[str, Any]) -> GatewayResult[Skill]:
        async def call():
            row = await self.client.update(
                self.config.SKILLS_TABLE,
                {"id": skill_id},
                skill_changes_to_row(changes)
            )
            return skill_from_row(row)
        return await self._call("update_skill", call)

    async def delete_skill(self, skill_id: str) -> GatewayResult[str]:
        async def call():
            await self.client.delete(self.config.SKILLS_TABLE, {"id": skill_id})
            return skill_id
        return await self._call("delete_skill", call)

    # Assets -----------------------------------------------------------

    def get_public_url(self, bucket: str, path: str) -> str:
        return self.client.public_url(bucket, path)

    def _asset(self, bucket: str, path: str, size: Optional[int] = None,
               content_type: Optional[str] = None) -> Asset:
        return Asset(
            bucket=bucket,
            path=path,
            public_url=self.get_public_url(bucket, path),
            size=size,
            content_type=content_type,
        )

    async def list_assets(self, bucket: str, prefix: str = "") -> GatewayResult[List[Asset]]:
        async def call():
            entries = await self.client.list_objects(bucket, prefix=prefix)
            assets = []
            for entry in entries:
                metadata = entry.get("metadata") or {}
                path = f"{prefix.rstrip('/')}/{entry['name']}" if prefix else entry["name"]
                assets.append(self._asset(
                    bucket,
                    path,
                    size=metadata.get("size"),
                    content_type=metadata.get("mimetype"),
                ))
            return assets
        return await self._call("list_assets", call)

    async def get_asset(self, bucket: str, path: str) -> GatewayResult[Asset]:
        async def call():
            info = await self.client.object_info(bucket, path)
            metadata = info.get("metadata") or info
            return self._asset(
                bucket,
                path,
                size=metadata.get("size"),
                content_type=metadata.get("mimetype") or metadata.get("content_type"),
            )
        return await self._call("get_asset", call)

    async def upload_file(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str
    ) -> GatewayResult[Asset]:
        async def call():
            await self.client.upload(bucket, path, content, content_type)
            return self._asset(bucket, path, size=len(content), content_type=content_type)
        return await self._call("upload_file", call)

    async def replace_file(
        self,
        content: bytes,
        bucket: str,
        path: str,
        content_type: str
    ) -> GatewayResult[Asset]:
        async def call():
            await self.client.upload(bucket, path, content, content_type, upsert=True)
            return self._asset(bucket, path, size=len(content), content_type=content_type)
        return await self._call("replace_file", call)

    async def delete_file(self, bucket: str, path: str) -> GatewayResult[str]:
        async def call():
            await self.client.remove(bucket, [path])
            return path
        return await self._call("delete_file", call)
