"""
Canonical data model for profiles, projects, skills and generated content
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class SkillLevel(str, Enum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    EXPERT = "expert"


class SocialPlatform(str, Enum):
    """Social link platforms, in display order"""
    GITHUB = "github"
    LINKEDIN = "linkedin"
    TWITTER = "twitter"
    INSTAGRAM = "instagram"
    BEHANCE = "behance"
    YOUTUBE = "youtube"
    WEBSITE = "website"


class PlanName(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"


class Profile(BaseModel):
    """One profile per user; ``id`` is the auth user id"""
    id: str
    name: str = ""
    role: str = ""
    bio: str = ""
    avatar_url: str = ""
    social_links: Dict[SocialPlatform, str] = Field(default_factory=dict)
    theme_selected: str = "minimal"
    username: str = ""
    subscription_plan: PlanName = PlanName.FREE
    subscription_status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    subscription_ends_at: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("social_links", mode="after")
    @classmethod
    def order_social_links(cls, links: Dict[SocialPlatform, str]) -> Dict[SocialPlatform, str]:
        # Keep platform order stable and drop blank URLs
        return {
            platform: links[platform].strip()
            for platform in SocialPlatform
            if links.get(platform) and links[platform].strip()
        }


class Project(BaseModel):
    id: Optional[str] = None
    user_id: str
    title: str
    description: str
    tags: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    live_url: Optional[str] = None
    repo_url: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class Skill(BaseModel):
    id: Optional[str] = None
    user_id: str
    name: str
    level: SkillLevel = SkillLevel.INTERMEDIATE
    created_at: Optional[str] = None


class Asset(BaseModel):
    """An object in a storage bucket"""
    bucket: str
    path: str
    public_url: str
    size: Optional[int] = None
    content_type: Optional[str] = None


class ProjectDraft(BaseModel):
    title: str = ""
    description: str = ""
    tags: List[str] = Field(default_factory=list)


class PortfolioDraft(BaseModel):
    """AI generated portfolio content, held locally until saved"""
    bio: str = ""
    skills: List[str] = Field(default_factory=list)
    projects: List[ProjectDraft] = Field(default_factory=list)


@dataclass
class GatewayResult(Generic[T]):
    """Uniform ``(data, error)`` pair returned by every gateway call"""
    data: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: T) -> "GatewayResult[T]":
        return cls(data=data, error=None)

    @classmethod
    def failure(cls, error: Exception) -> "GatewayResult[T]":
        return cls(data=None, error=error)
