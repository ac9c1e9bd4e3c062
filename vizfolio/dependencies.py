"""
FastAPI dependencies shared by the routers
"""
from functools import lru_cache
from typing import AsyncIterator

from vizfolio.config import settings
from vizfolio.services.ai_content import ContentGenerator, get_content_generator
from vizfolio.services.gateway import PortfolioGateway
from vizfolio.services.supabase_client import SupabaseClient


@lru_cache(maxsize=1)
def get_generator() -> ContentGenerator:
    """One generator per process, chosen by AI_GENERATION_MODE"""
    return get_content_generator(settings)


async def get_gateway() -> AsyncIterator[PortfolioGateway]:
    client = SupabaseClient()
    try:
        yield PortfolioGateway(client)
    finally:
        await client.aclose()
