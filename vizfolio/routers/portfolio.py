"""
Public portfolio and theme catalog router
"""
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from typing import Any, Dict, List, Optional

from vizfolio.dependencies import get_gateway
from vizfolio.logging_config import logger
from vizfolio.models import Profile, Project, Skill, SkillLevel
from vizfolio.services.gateway import PortfolioGateway
from vizfolio.services.themes import get_available_themes, portfolio_url, resolve_theme, themes_by_category

router = APIRouter()


class ThemeInfo(BaseModel):
    """Theme information model"""
    id: str
    name: str
    description: str
    preview: str
    colors: List[str]
    features: List[str]
    category: str


class ThemesResponse(BaseModel):
    success: bool
    themes: List[ThemeInfo]
    categories: Dict[str, List[str]]  # category -> theme ids


class PublicPortfolioResponse(BaseModel):
    """Everything a theme template needs to render a public portfolio"""
    profile: Profile
    projects: List[Project]
    skills: Dict[str, List[Skill]]
    theme: ThemeInfo
    url: str


@router.get("/themes", response_model=ThemesResponse)
async def list_themes():
    return ThemesResponse(
        success=True,
        themes=[ThemeInfo(**t) for t in get_available_themes()],
        categories={
            category: [theme["id"] for theme in themes]
            for category, themes in themes_by_category().items()
        }
    )


@router.get("/portfolio/{username}", response_model=PublicPortfolioResponse)
async def get_public_portfolio(
    username: str,
    theme: Optional[str] = None,
    gateway: PortfolioGateway = Depends(get_gateway)
):
    """
    Public portfolio data for a username.

    ``theme`` overrides the owner's selected theme for previews.
    """
    profiles = await gateway.list_profiles(username=username)
    if not profiles.ok:
        logger.error("Failed to load public profile", username=username, error=str(profiles.error))
        raise HTTPException(status_code=502, detail="Failed to load portfolio")
    if not profiles.data:
        raise HTTPException(status_code=404, detail="Portfolio not found")

    profile = profiles.data[0]
    projects = await gateway.list_projects(profile.id)
    skills = await gateway.list_skills(profile.id)
    if not projects.ok or not skills.ok:
        error: Any = projects.error or skills.error
        logger.error("Failed to load portfolio content", username=username, error=str(error))
        raise HTTPException(status_code=502, detail="Failed to load portfolio")

    grouped: Dict[str, List[Skill]] = {level.value: [] for level in SkillLevel}
    for skill in skills.data:
        grouped[skill.level.value].append(skill)

    return PublicPortfolioResponse(
        profile=profile,
        projects=projects.data,
        skills=grouped,
        theme=ThemeInfo(**resolve_theme(theme or profile.theme_selected)),
        url=portfolio_url(profile.username),
    )
