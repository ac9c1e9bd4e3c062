"""
In-memory snapshots of one user's profile, projects and skills.

A refresh always re-fetches the whole collection and swaps it in; there is
no merging of partial results. When no user is signed in the holders stay
in the access-denied state and never fetch.
"""
from typing import Awaitable, Callable, Generic, List, Optional, TypeVar

from vizfolio.logging_config import logger
from vizfolio.models import GatewayResult, Profile, Project, Skill
from vizfolio.services.gateway import PortfolioGateway

T = TypeVar("T")


class CollectionState(Generic[T]):
    """Snapshot of one entity collection for the active user"""

    def __init__(
        self,
        name: str,
        fetch: Callable[[str], Awaitable[GatewayResult[List[T]]]],
        user_id: Optional[str]
    ):
        self.name = name
        self._fetch = fetch
        self.user_id = user_id
        self.items: List[T] = []
        self.loaded = False
        self.error: Optional[Exception] = None

    @property
    def access_denied(self) -> bool:
        return not self.user_id

    async def load(self) -> bool:
        """Initial population on mount"""
        if self.access_denied:
            logger.warning(f"No signed-in user, not loading {self.name}")
            return False
        return await self.refresh()

    async def refresh(self) -> bool:
        if self.access_denied:
            return False
        result = await self._fetch(self.user_id)
        if not result.ok:
            # Keep the previous snapshot on a failed fetch
            self.error = result.error
            logger.error(f"Failed to refresh {self.name}", error=str(result.error))
            return False
        self.items = list(result.data or [])
        self.error = None
        self.loaded = True
        logger.info(f"Refreshed {self.name}", count=len(self.items))
        return True

    def __len__(self) -> int:
        return len(self.items)


class ProfileState:
    """Snapshot of the signed-in user's profile (None until one is saved)"""

    def __init__(self, gateway: PortfolioGateway, user_id: Optional[str]):
        self.gateway = gateway
        self.user_id = user_id
        self.profile: Optional[Profile] = None
        self.loaded = False
        self.error: Optional[Exception] = None

    @property
    def access_denied(self) -> bool:
        return not self.user_id

    async def load(self) -> bool:
        if self.access_denied:
            logger.warning("No signed-in user, not loading profile")
            return False
        return await self.refresh()

    async def refresh(self) -> bool:
        if self.access_denied:
            return False
        result = await self.gateway.get_profile(self.user_id)
        if not result.ok:
            if getattr(result.error, "code", None) == "PGRST116":
                # No profile yet is a normal state for new users
                self.profile = None
                self.error = None
                self.loaded = True
                return True
            self.error = result.error
            logger.error("Failed to refresh profile", error=str(result.error))
            return False
        self.profile = result.data
        self.error = None
        self.loaded = True
        return True


class DashboardState:
    """Profile, projects and skills for the dashboard of one user"""

    def __init__(self, gateway: PortfolioGateway, user_id: Optional[str]):
        self.gateway = gateway
        self.user_id = user_id
        self.profile = ProfileState(gateway, user_id)
        self.projects: CollectionState[Project] = CollectionState("projects", gateway.list_projects, user_id)
        self.skills: CollectionState[Skill] = CollectionState("skills", gateway.list_skills, user_id)

    @property
    def access_denied(self) -> bool:
        return not self.user_id

    async def load(self) -> bool:
        if self.access_denied:
            logger.warning("Dashboard opened without a signed-in user")
            return False
        return await self.refresh_all()

    async def refresh_all(self) -> bool:
        results = [
            await self.profile.refresh(),
            await self.projects.refresh(),
            await self.skills.refresh(),
        ]
        return all(results)
