"""
AI content generation for bios, project descriptions, skill suggestions
and complete portfolio drafts.

Three interchangeable generators share one interface:
- GeminiContentGenerator calls Google Gemini (server side only, it holds the key)
- SimulatedContentGenerator answers from role-keyed templates
- AIProxyClient calls the Vizfolio AI proxy over HTTP (what dashboards use)

Which of the first two the proxy runs is the AI_GENERATION_MODE setting.
"""
import asyncio
import json
import random
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional

import google.generativeai as genai
import httpx
from pydantic import ValidationError

from vizfolio.config import settings, Settings
from vizfolio.logging_config import logger
from vizfolio.models import PortfolioDraft, ProjectDraft

GENERATION_FAILED = "Failed to generate AI content"
PORTFOLIO_FAILED = "Failed to generate portfolio data"
MAX_SKILL_SUGGESTIONS = 10

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


class AIGenerationError(Exception):
    """Raised when content could not be generated or parsed"""


# ----------------------------------------------------------------------
# Prompts and parsing
# ----------------------------------------------------------------------

def build_bio_prompt(name: str, role: str, skills: Optional[List[str]] = None) -> str:
    skills_text = f" with skills in {', '.join(skills)}" if skills else ""
    return (
        f"Write a professional portfolio bio for {name}, a {role}{skills_text}. "
        "Keep it under 120 words. Make it engaging and professional."
    )


def build_project_description_prompt(title: str, tags: Optional[List[str]] = None) -> str:
    tags_text = f" with technologies: {', '.join(tags)}" if tags else ""
    return (
        f'Write a concise project description for "{title}"{tags_text} suitable for a portfolio. '
        "Focus on impact and technical implementation. Keep it under 100 words."
    )


def build_skills_prompt(role: Optional[str] = None, skills: Optional[List[str]] = None) -> str:
    if role:
        subject = f"that a {role} should showcase in their portfolio"
    else:
        subject = f"that complement these existing skills: {', '.join(skills or [])}"
    return (
        f"Suggest {MAX_SKILL_SUGGESTIONS} relevant technical and professional skills {subject}. "
        "Return only a comma-separated list of skills, no explanations."
    )


def build_portfolio_prompt(name: str, role: str) -> str:
    example_projects = ",\n    ".join(
        '{\n      "title": "Project Title %d",\n'
        '      "description": "Project description under 100 words",\n'
        '      "tags": ["tag1", "tag2", "tag3"]\n    }' % i
        for i in range(1, 4)
    )
    return f"""Generate a complete portfolio JSON for {name}, a {role}. Return only valid JSON with this exact structure:
{{
  "bio": "professional description under 120 words",
  "skills": ["skill1", "skill2", "skill3", "skill4", "skill5", "skill6", "skill7", "skill8", "skill9", "skill10"],
  "projects": [
    {example_projects}
  ]
}}

Make the content realistic and relevant for a {role}."""


def parse_skill_list(text: str) -> List[str]:
    """Split a comma separated answer into at most 10 skill names"""
    skills = [skill.strip().strip(".") for skill in text.split(",")]
    return [skill for skill in skills if skill][:MAX_SKILL_SUGGESTIONS]


def extract_json_object(text: str) -> Dict[str, Any]:
    """
    Parse the first-``{`` to last-``}`` span of a model answer.

    Raises:
        AIGenerationError: when there is no such span or it is not a JSON object
    """
    match = _JSON_OBJECT.search(text or "")
    if not match:
        raise AIGenerationError(PORTFOLIO_FAILED)
    try:
        parsed = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse AI response: {str(e)}")
        raise AIGenerationError(PORTFOLIO_FAILED) from e
    if not isinstance(parsed, dict):
        raise AIGenerationError(PORTFOLIO_FAILED)
    return parsed


def parse_portfolio_draft(text: str) -> PortfolioDraft:
    """Missing keys fall back to empty values; wrongly typed values fail"""
    data = extract_json_object(text)
    try:
        return PortfolioDraft.model_validate(data)
    except ValidationError as e:
        logger.error(f"AI portfolio response has unexpected shape: {str(e)}")
        raise AIGenerationError(PORTFOLIO_FAILED) from e


# ----------------------------------------------------------------------
# Generators
# ----------------------------------------------------------------------

class ContentGenerator:
    """Base class: subclasses provide ``_complete(prompt) -> str``"""

    mode = "base"

    async def _complete(self, prompt: str) -> str:
        raise NotImplementedError

    async def generate_bio(self, name: str, role: str, skills: Optional[List[str]] = None) -> str:
        return (await self._complete(build_bio_prompt(name, role, skills))).strip()

    async def generate_project_description(self, title: str, tags: Optional[List[str]] = None) -> str:
        return (await self._complete(build_project_description_prompt(title, tags))).strip()

    async def suggest_skills(
        self,
        role: Optional[str] = None,
        skills: Optional[List[str]] = None
    ) -> List[str]:
        return parse_skill_list(await self._complete(build_skills_prompt(role, skills)))

    async def generate_full_portfolio(self, name: str, role: str) -> PortfolioDraft:
        return parse_portfolio_draft(await self._complete(build_portfolio_prompt(name, role)))


class GeminiContentGenerator(ContentGenerator):
    """Content generator backed by Google Gemini"""

    mode = "live"

    def __init__(self, api_key: Optional[str] = None, model_name: Optional[str] = None, model: Any = None):
        """
        Args:
            api_key: Gemini API key, defaults to GEMINI_API_KEY
            model_name: Gemini model, defaults to GEMINI_MODEL
            model: Pre-built model object (anything with ``generate_content_async``)
        """
        self.model_name = model_name or settings.GEMINI_MODEL
        if model is None:
            api_key = api_key or settings.GEMINI_API_KEY
            if not api_key:
                raise ValueError("GEMINI_API_KEY not configured")
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(self.model_name)
        self.model = model
        logger.info(f"Initialized GeminiContentGenerator with model: {self.model_name}")

    async def _complete(self, prompt: str) -> str:
        generation_config = {
            "temperature": settings.TEMPERATURE,
            "max_output_tokens": settings.MAX_TOKENS,
        }
        try:
            response = await self.model.generate_content_async(
                prompt,
                generation_config=generation_config
            )
            if not response.candidates or not response.candidates[0].content.parts:
                finish_reason = response.candidates[0].finish_reason if response.candidates else "Unknown"
                logger.error(f"Gemini returned no content. Finish reason: {finish_reason}")
                raise AIGenerationError(GENERATION_FAILED)
            text = response.candidates[0].content.parts[0].text
        except AIGenerationError:
            raise
        except Exception as e:
            logger.error(f"Gemini API error: {str(e)}")
            raise AIGenerationError(GENERATION_FAILED) from e

        logger.info("Gemini content generated", prompt_chars=len(prompt), response_chars=len(text))
        return text


ROLE_TEMPLATES: Dict[str, Dict[str, Any]] = {
    "developer": {
        "bio": (
            "{name} is a {role} who builds reliable, well-tested software. "
            "They enjoy turning fuzzy product ideas into clean APIs and fast interfaces, "
            "and care about code that the next engineer can read."
        ),
        "skills": [
            "Python", "JavaScript", "TypeScript", "React", "Node.js",
            "SQL", "Git", "Docker", "REST APIs", "Testing",
        ],
        "projects": [
            ("Task Management API", "A REST API for team task tracking with auth and real-time updates.",
             ["Python", "FastAPI", "PostgreSQL"]),
            ("E-commerce Storefront", "A responsive storefront with cart, checkout and payment integration.",
             ["React", "Node.js", "Stripe"]),
            ("Developer Portfolio", "A personal site with project case studies and a blog.",
             ["Next.js", "Tailwind CSS"]),
        ],
    },
    "designer": {
        "bio": (
            "{name} is a {role} focused on clear, human-centred interfaces. "
            "They move from research and wireframes to polished visual systems, "
            "and love working closely with engineers to ship the details."
        ),
        "skills": [
            "Figma", "User Research", "Wireframing", "Prototyping", "Design Systems",
            "Typography", "Adobe Illustrator", "Interaction Design", "Accessibility", "Usability Testing",
        ],
        "projects": [
            ("Banking App Redesign", "A mobile banking redesign that simplified transfers and onboarding.",
             ["Figma", "UX Research"]),
            ("Design System", "A component library and token set shared across three products.",
             ["Design Systems", "Figma"]),
            ("Brand Identity", "Logo, palette and typography for an early-stage startup.",
             ["Branding", "Illustrator"]),
        ],
    },
    "data": {
        "bio": (
            "{name} is a {role} who turns raw data into decisions. "
            "They build pipelines, models and dashboards, and explain results "
            "in plain language to the people who act on them."
        ),
        "skills": [
            "Python", "SQL", "Pandas", "NumPy", "scikit-learn",
            "Data Visualization", "Statistics", "Machine Learning", "Airflow", "Tableau",
        ],
        "projects": [
            ("Churn Prediction Model", "A model predicting customer churn with explainable features.",
             ["Python", "scikit-learn"]),
            ("Sales Dashboard", "An interactive dashboard tracking revenue across regions.",
             ["SQL", "Tableau"]),
            ("ETL Pipeline", "A scheduled pipeline consolidating product analytics data.",
             ["Airflow", "Python"]),
        ],
    },
    "default": {
        "bio": (
            "{name} is a {role} with a track record of delivering thoughtful work. "
            "They combine curiosity with a practical approach and enjoy "
            "collaborating on projects that make a difference."
        ),
        "skills": [
            "Communication", "Project Management", "Problem Solving", "Collaboration", "Leadership",
            "Research", "Presentation", "Time Management", "Critical Thinking", "Adaptability",
        ],
        "projects": [
            ("Process Improvement Initiative", "Streamlined a core workflow and cut turnaround time.",
             ["Operations", "Analysis"]),
            ("Community Workshop Series", "Planned and ran a series of hands-on workshops.",
             ["Leadership", "Teaching"]),
            ("Research Report", "An in-depth report with findings and recommendations.",
             ["Research", "Writing"]),
        ],
    },
}

_ROLE_KEYWORDS = {
    "developer": ("developer", "engineer", "programmer", "software", "frontend", "backend", "full stack"),
    "designer": ("designer", "design", "ux", "ui", "artist"),
    "data": ("data", "analyst", "scientist", "machine learning", "ml"),
}


def template_for_role(role: Optional[str]) -> Dict[str, Any]:
    role_text = (role or "").lower()
    for key, keywords in _ROLE_KEYWORDS.items():
        if any(keyword in role_text for keyword in keywords):
            return ROLE_TEMPLATES[key]
    return ROLE_TEMPLATES["default"]


class SimulatedContentGenerator(ContentGenerator):
    """Template-based generator used when AI_GENERATION_MODE is 'simulated'"""

    mode = "simulated"

    def __init__(
        self,
        delay_range: Optional[tuple] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None
    ):
        self.delay_range = delay_range or (settings.SIMULATED_DELAY_MIN, settings.SIMULATED_DELAY_MAX)
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def _pause(self) -> None:
        await self._sleep(self._rng.uniform(*self.delay_range))

    async def generate_bio(self, name: str, role: str, skills: Optional[List[str]] = None) -> str:
        await self._pause()
        bio = template_for_role(role)["bio"].format(name=name, role=role)
        if skills:
            bio += f" Key skills include {', '.join(skills[:5])}."
        return bio

    async def generate_project_description(self, title: str, tags: Optional[List[str]] = None) -> str:
        await self._pause()
        description = f"{title} is a portfolio project focused on solving a real user problem end to end."
        if tags:
            description += f" Built with {', '.join(tags)}."
        return description

    async def suggest_skills(
        self,
        role: Optional[str] = None,
        skills: Optional[List[str]] = None
    ) -> List[str]:
        await self._pause()
        if not role and skills:
            role = " ".join(skills)
        existing = {skill.lower() for skill in skills or []}
        suggestions = [s for s in template_for_role(role)["skills"] if s.lower() not in existing]
        return suggestions[:MAX_SKILL_SUGGESTIONS]

    async def generate_full_portfolio(self, name: str, role: str) -> PortfolioDraft:
        await self._pause()
        template = template_for_role(role)
        return PortfolioDraft(
            bio=template["bio"].format(name=name, role=role),
            skills=list(template["skills"]),
            projects=[
                ProjectDraft(title=title, description=description, tags=list(tags))
                for title, description, tags in template["projects"]
            ],
        )


def _text_field(data: Dict[str, Any], key: str) -> str:
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"'{key}' is {type(value).__name__}, expected str")
    return value


def _skill_field(data: Dict[str, Any]) -> List[str]:
    skills = data["skills"]
    if not isinstance(skills, list) or not all(isinstance(s, str) for s in skills):
        raise TypeError("'skills' is not a list of strings")
    return skills


class AIProxyClient:
    """Calls the Vizfolio AI proxy; no credential ever reaches this side"""

    def __init__(self, base_url: Optional[str] = None, http_client: Optional[httpx.AsyncClient] = None):
        self.base_url = (base_url or settings.AI_PROXY_URL).rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=60.0)
        self.mode: Optional[str] = None

    async def aclose(self) -> None:
        await self._http.aclose()

    async def _post(
        self,
        endpoint: str,
        payload: Dict[str, Any],
        extract: Callable[[Dict[str, Any]], Any],
        failure: str = GENERATION_FAILED
    ) -> Any:
        """POST to the proxy and pull the answer out of its JSON body with ``extract``"""
        try:
            response = await self._http.post(f"{self.base_url}/api/ai/{endpoint}", json=payload)
        except httpx.HTTPError as e:
            logger.error(f"AI proxy request failed: {str(e)}", endpoint=endpoint)
            raise AIGenerationError(GENERATION_FAILED) from e

        if response.status_code != 200:
            logger.error("AI proxy returned an error", endpoint=endpoint, status_code=response.status_code)
            raise AIGenerationError(failure)

        try:
            data = response.json()
            result = extract(data)
        except (ValueError, KeyError, TypeError, ValidationError) as e:
            logger.error(f"AI proxy returned an unexpected body: {str(e)}", endpoint=endpoint)
            raise AIGenerationError(failure) from e

        self.mode = data.get("mode", self.mode)
        return result

    async def generate_bio(self, name: str, role: str, skills: Optional[List[str]] = None) -> str:
        return await self._post(
            "bio",
            {"name": name, "role": role, "skills": skills or []},
            lambda data: _text_field(data, "bio")
        )

    async def generate_project_description(self, title: str, tags: Optional[List[str]] = None) -> str:
        return await self._post(
            "project-description",
            {"title": title, "tags": tags or []},
            lambda data: _text_field(data, "description")
        )

    async def suggest_skills(
        self,
        role: Optional[str] = None,
        skills: Optional[List[str]] = None
    ) -> List[str]:
        return await self._post(
            "skills",
            {"role": role, "skills": skills or []},
            _skill_field
        )

    async def generate_full_portfolio(self, name: str, role: str) -> PortfolioDraft:
        return await self._post(
            "portfolio",
            {"name": name, "role": role},
            lambda data: PortfolioDraft.model_validate(data["portfolio"]),
            failure=PORTFOLIO_FAILED
        )


def get_content_generator(config: Settings = settings) -> ContentGenerator:
    """Pick the generator named by AI_GENERATION_MODE"""
    if config.AI_GENERATION_MODE == "simulated":
        return SimulatedContentGenerator(
            delay_range=(config.SIMULATED_DELAY_MIN, config.SIMULATED_DELAY_MAX)
        )
    if config.AI_GENERATION_MODE == "live":
        return GeminiContentGenerator(api_key=config.GEMINI_API_KEY, model_name=config.GEMINI_MODEL)
    raise ValueError(f"Unknown AI_GENERATION_MODE: {config.AI_GENERATION_MODE}")
