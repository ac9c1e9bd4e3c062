"""
Subscription plans and the client-side project limit gate.

The limits here are only checked before a create is attempted; nothing
on the storage side enforces them.
"""
from typing import Dict, List, Optional

from pydantic import BaseModel

from vizfolio.models import GatewayResult, PlanName, SubscriptionStatus
from vizfolio.services.gateway import PortfolioGateway


class SubscriptionPlan(BaseModel):
    id: str
    name: PlanName
    price: int
    currency: str = "INR"
    portfolio_limit: Optional[int]  # None means unlimited
    features: List[str]


class Subscription(BaseModel):
    plan: PlanName = PlanName.FREE
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE
    ends_at: Optional[str] = None


SUBSCRIPTION_PLANS: Dict[str, SubscriptionPlan] = {
    "free": SubscriptionPlan(
        id="free",
        name=PlanName.FREE,
        price=0,
        portfolio_limit=2,
        features=[
            "2 Portfolio Projects",
            "Basic Themes (3)",
            "Public Portfolio URL",
            "Basic Analytics",
            "Community Support",
            "AI Bio Generation",
        ],
    ),
    "pro": SubscriptionPlan(
        id="pro",
        name=PlanName.PRO,
        price=500,
        portfolio_limit=6,
        features=[
            "6 Portfolio Projects",
            "All Premium Themes (15+)",
            "Custom Portfolio URL",
            "Advanced Analytics & Views",
            "AI Content Generation",
            "Project Source Tracking",
            "Email Support",
            "SEO Optimization",
            "Social Media Integration",
        ],
    ),
    "enterprise": SubscriptionPlan(
        id="enterprise",
        name=PlanName.ENTERPRISE,
        price=2000,
        portfolio_limit=None,
        features=[
            "Unlimited Portfolio Projects",
            "All Themes + Custom Themes",
            "Multiple Custom Domains (5)",
            "Advanced Analytics Dashboard",
            "AI-Powered Content Suite",
            "Portfolio Performance Insights",
            "Priority 24/7 Support",
            "Technical Support & Customization",
            "White-label Branding",
            "API Access",
            "Team Collaboration Tools",
            "Custom Integrations",
        ],
    ),
}


def _plan_key(plan) -> str:
    return plan.value if isinstance(plan, PlanName) else str(plan)


def get_plan(plan) -> Optional[SubscriptionPlan]:
    return SUBSCRIPTION_PLANS.get(_plan_key(plan))


def can_create_portfolio(plan, current_project_count: int) -> bool:
    """True when one more project fits under the plan's limit"""
    subscription_plan = get_plan(plan)
    if subscription_plan is None:
        return False
    if subscription_plan.portfolio_limit is None:
        return True
    return current_project_count < subscription_plan.portfolio_limit


def get_portfolio_limit(plan) -> Optional[int]:
    """Project ceiling for a plan: 0 for unknown plans, None for unlimited"""
    subscription_plan = get_plan(plan)
    if subscription_plan is None:
        return 0
    return subscription_plan.portfolio_limit


def has_feature(plan, feature: str) -> bool:
    subscription_plan = get_plan(plan)
    if subscription_plan is None:
        return False
    return feature in subscription_plan.features


async def get_user_subscription(
    gateway: PortfolioGateway,
    user_id: str
) -> GatewayResult[Subscription]:
    result = await gateway.get_profile(user_id)
    if not result.ok:
        return GatewayResult.failure(result.error)
    profile = result.data
    return GatewayResult.success(Subscription(
        plan=profile.subscription_plan,
        status=profile.subscription_status,
        ends_at=profile.subscription_ends_at,
    ))


async def update_user_subscription(
    gateway: PortfolioGateway,
    user_id: str,
    plan: PlanName,
    status: SubscriptionStatus = SubscriptionStatus.ACTIVE,
    ends_at: Optional[str] = None
) -> GatewayResult[Subscription]:
    result = await gateway.update_profile(user_id, {
        "subscription_plan": plan,
        "subscription_status": status,
        "subscription_ends_at": ends_at,
    })
    if not result.ok:
        return GatewayResult.failure(result.error)
    return GatewayResult.success(Subscription(
        plan=result.data.subscription_plan,
        status=result.data.subscription_status,
        ends_at=result.data.subscription_ends_at,
    ))
