"""
AI assisted portfolio bootstrap.

Writing a generated portfolio is a sequence of independent writes (profile,
then skills, then projects). Each write is a step in a journal; the run
stops at the first failed step and the result is flagged partial, so the
caller can either ``resume`` from that step or ``rollback`` the steps that
already landed (deleting created rows and restoring an updated profile).
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from vizfolio.logging_config import logger
from vizfolio.models import GatewayResult, PortfolioDraft, Profile, Project, Skill, SkillLevel
from vizfolio.services.gateway import PortfolioGateway
from vizfolio.services.themes import slugify_username

# Sample projects are only added while the user has fewer than this many
SAMPLE_PROJECT_THRESHOLD = 3


class StepStatus(str, Enum):
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    ROLLED_BACK = "rolled_back"


@dataclass
class BootstrapStep:
    kind: str  # "profile", "skill" or "project"
    label: str
    payload: Any
    action: str = "create"  # "create" or "update"
    status: StepStatus = StepStatus.PENDING
    record_id: Optional[str] = None
    previous: Optional[Dict[str, Any]] = None
    error: Optional[Exception] = None


@dataclass
class BootstrapResult:
    draft: PortfolioDraft
    steps: List[BootstrapStep] = field(default_factory=list)

    def _with_status(self, status: StepStatus) -> List[BootstrapStep]:
        return [step for step in self.steps if step.status == status]

    @property
    def completed(self) -> List[BootstrapStep]:
        return self._with_status(StepStatus.DONE)

    @property
    def failed(self) -> List[BootstrapStep]:
        return self._with_status(StepStatus.FAILED)

    @property
    def pending(self) -> List[BootstrapStep]:
        return self._with_status(StepStatus.PENDING)

    @property
    def succeeded(self) -> bool:
        return all(step.status == StepStatus.DONE for step in self.steps)

    @property
    def partial(self) -> bool:
        """Some writes landed but not all of them"""
        return bool(self.completed) and not self.succeeded

    @property
    def rolled_back(self) -> bool:
        return not self.completed and bool(self._with_status(StepStatus.ROLLED_BACK))


class PortfolioBootstrapper:
    """Generates a portfolio draft and writes it through the gateway as a journal of steps"""

    def __init__(self, gateway: PortfolioGateway, content, user_id: str):
        self.gateway = gateway
        self.content = content
        self.user_id = user_id

    def plan(
        self,
        draft: PortfolioDraft,
        name: str,
        role: str,
        profile: Optional[Profile] = None,
        existing_skills: Optional[List[Skill]] = None,
        existing_project_count: int = 0
    ) -> BootstrapResult:
        """Turn a draft into pending steps, skipping skills the user already has"""
        result = BootstrapResult(draft=draft)

        profile_fields = {
            "name": name,
            "role": role,
            "bio": draft.bio,
            "username": (profile.username if profile and profile.username else slugify_username(name)),
        }
        if profile:
            result.steps.append(BootstrapStep(
                kind="profile",
                label="Update profile & bio",
                payload=profile_fields,
                action="update",
                previous={key: getattr(profile, key) for key in profile_fields},
            ))
        else:
            result.steps.append(BootstrapStep(
                kind="profile",
                label="Create profile & bio",
                payload=Profile(id=self.user_id, **profile_fields),
            ))

        seen = {skill.name.lower() for skill in existing_skills or []}
        for skill_name in draft.skills:
            skill_name = skill_name.strip()
            if not skill_name or skill_name.lower() in seen:
                continue
            seen.add(skill_name.lower())
            result.steps.append(BootstrapStep(
                kind="skill",
                label=f"Add skill {skill_name}",
                payload=Skill(user_id=self.user_id, name=skill_name, level=SkillLevel.INTERMEDIATE),
            ))

        if existing_project_count < SAMPLE_PROJECT_THRESHOLD:
            for project in draft.projects:
                if not project.title or not project.description:
                    logger.warning("Skipping incomplete generated project", title=project.title)
                    continue
                result.steps.append(BootstrapStep(
                    kind="project",
                    label=f"Add project {project.title}",
                    payload=Project(
                        user_id=self.user_id,
                        title=project.title,
                        description=project.description,
                        tags=project.tags,
                    ),
                ))

        return result

    async def _execute(self, step: BootstrapStep) -> GatewayResult:
        if step.kind == "profile":
            if step.action == "update":
                return await self.gateway.update_profile(self.user_id, step.payload)
            return await self.gateway.create_profile(step.payload)
        if step.kind == "skill":
            return await self.gateway.create_skill(step.payload)
        if step.kind == "project":
            return await self.gateway.create_project(step.payload)
        raise ValueError(f"Unknown bootstrap step kind: {step.kind}")

    async def run(self, result: BootstrapResult) -> BootstrapResult:
        """Execute pending steps in order, stopping at the first failure"""
        for step in result.steps:
            if step.status != StepStatus.PENDING:
                continue
            try:
                outcome = await self._execute(step)
            except Exception as e:
                outcome = GatewayResult.failure(e)
            if not outcome.ok:
                step.status = StepStatus.FAILED
                step.error = outcome.error
                logger.error(
                    "Portfolio bootstrap step failed",
                    step=step.label,
                    completed=len(result.completed),
                    remaining=len(result.pending),
                    error=str(outcome.error)
                )
                break
            step.status = StepStatus.DONE
            step.error = None
            step.record_id = getattr(outcome.data, "id", None)

        if result.succeeded:
            logger.info("Portfolio bootstrap completed", steps=len(result.steps))
        return result

    async def resume(self, result: BootstrapResult) -> BootstrapResult:
        """Retry the failed step and carry on with the rest"""
        for step in result.failed:
            step.status = StepStatus.PENDING
        return await self.run(result)

    async def _compensate(self, step: BootstrapStep) -> GatewayResult:
        if step.kind == "profile":
            if step.action == "update":
                return await self.gateway.update_profile(self.user_id, step.previous or {})
            return await self.gateway.delete_profile(self.user_id)
        if step.kind == "skill":
            return await self.gateway.delete_skill(step.record_id)
        return await self.gateway.delete_project(step.record_id)

    async def rollback(self, result: BootstrapResult) -> BootstrapResult:
        """Undo completed steps, newest first"""
        for step in reversed(result.completed):
            try:
                outcome = await self._compensate(step)
            except Exception as e:
                outcome = GatewayResult.failure(e)
            if outcome.ok:
                step.status = StepStatus.ROLLED_BACK
            else:
                step.error = outcome.error
                logger.error("Failed to roll back bootstrap step", step=step.label, error=str(outcome.error))
        return result

    async def bootstrap(
        self,
        name: str,
        role: str,
        profile: Optional[Profile] = None,
        existing_skills: Optional[List[Skill]] = None,
        existing_project_count: int = 0
    ) -> BootstrapResult:
        """Generate a draft and write it. AIGenerationError propagates before any write."""
        draft = await self.content.generate_full_portfolio(name, role)
        result = self.plan(draft, name, role, profile, existing_skills, existing_project_count)
        return await self.run(result)
