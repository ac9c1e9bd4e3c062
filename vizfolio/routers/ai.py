"""
AI proxy router.

Dashboards never see the Gemini key: they post small requests here and the
service runs the configured generator (live Gemini or simulated templates).
"""
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from typing import List, Optional
import time

from slowapi import Limiter
from slowapi.util import get_remote_address

from vizfolio.config import settings
from vizfolio.dependencies import get_generator
from vizfolio.logging_config import logger
from vizfolio.models import PortfolioDraft
from vizfolio.services.ai_content import AIGenerationError, ContentGenerator

router = APIRouter()
limiter = Limiter(key_func=get_remote_address)


class BioRequest(BaseModel):
    """Request model for bio generation"""
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)
    skills: List[str] = []


class BioResponse(BaseModel):
    success: bool
    mode: str
    bio: str
    execution_time: float


class ProjectDescriptionRequest(BaseModel):
    """Request model for project description generation"""
    title: str = Field(..., min_length=1)
    tags: List[str] = []


class ProjectDescriptionResponse(BaseModel):
    success: bool
    mode: str
    description: str
    execution_time: float


class SkillSuggestionRequest(BaseModel):
    """Suggest skills for a role, or to complement existing skills"""
    role: Optional[str] = None
    skills: List[str] = []


class SkillSuggestionResponse(BaseModel):
    success: bool
    mode: str
    skills: List[str]
    execution_time: float


class PortfolioRequest(BaseModel):
    """Request model for full portfolio generation"""
    name: str = Field(..., min_length=1)
    role: str = Field(..., min_length=1)


class PortfolioResponse(BaseModel):
    success: bool
    mode: str
    portfolio: PortfolioDraft
    execution_time: float


def _generation_failed(endpoint: str, error: AIGenerationError) -> HTTPException:
    logger.error("AI generation failed", endpoint=endpoint, error=str(error))
    return HTTPException(status_code=502, detail=str(error))


@router.post("/ai/bio", response_model=BioResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_bio(
    request: Request,
    data: BioRequest,
    generator: ContentGenerator = Depends(get_generator)
):
    """Generate a portfolio bio from name, role and optional skills"""
    start_time = time.time()
    try:
        bio = await generator.generate_bio(data.name, data.role, data.skills)
    except AIGenerationError as e:
        raise _generation_failed("bio", e)

    logger.info("Bio generated", mode=generator.mode, chars=len(bio))
    return BioResponse(success=True, mode=generator.mode, bio=bio, execution_time=time.time() - start_time)


@router.post("/ai/project-description", response_model=ProjectDescriptionResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_project_description(
    request: Request,
    data: ProjectDescriptionRequest,
    generator: ContentGenerator = Depends(get_generator)
):
    """Generate a short project description from a title and tags"""
    start_time = time.time()
    try:
        description = await generator.generate_project_description(data.title, data.tags)
    except AIGenerationError as e:
        raise _generation_failed("project-description", e)

    return ProjectDescriptionResponse(
        success=True,
        mode=generator.mode,
        description=description,
        execution_time=time.time() - start_time
    )


@router.post("/ai/skills", response_model=SkillSuggestionResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def suggest_skills(
    request: Request,
    data: SkillSuggestionRequest,
    generator: ContentGenerator = Depends(get_generator)
):
    """Suggest up to 10 skills"""
    if not data.role and not data.skills:
        raise HTTPException(status_code=422, detail="Provide a role or existing skills")

    start_time = time.time()
    try:
        skills = await generator.suggest_skills(role=data.role, skills=data.skills)
    except AIGenerationError as e:
        raise _generation_failed("skills", e)

    return SkillSuggestionResponse(
        success=True,
        mode=generator.mode,
        skills=skills,
        execution_time=time.time() - start_time
    )


@router.post("/ai/portfolio", response_model=PortfolioResponse)
@limiter.limit(settings.AI_RATE_LIMIT)
async def generate_portfolio(
    request: Request,
    data: PortfolioRequest,
    generator: ContentGenerator = Depends(get_generator)
):
    """
    Generate a complete portfolio draft: bio, skills and three projects.

    The draft is not saved; the dashboard writes it through its own gateway.
    """
    start_time = time.time()
    try:
        draft = await generator.generate_full_portfolio(data.name, data.role)
    except AIGenerationError as e:
        raise _generation_failed("portfolio", e)

    logger.info(
        "Portfolio draft generated",
        mode=generator.mode,
        skills=len(draft.skills),
        projects=len(draft.projects)
    )
    return PortfolioResponse(
        success=True,
        mode=generator.mode,
        portfolio=draft,
        execution_time=time.time() - start_time
    )
