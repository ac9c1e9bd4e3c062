"""
Portfolio theme catalog, username slugs and public portfolio URLs
"""
import re
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from vizfolio.config import settings


# Theme definitions shown on the Themes tab
PORTFOLIO_THEMES: Dict[str, Dict[str, Any]] = {
    "minimal": {
        "id": "minimal",
        "name": "Minimal",
        "description": "Clean and simple design with focus on content",
        "preview": "/themes/minimal-preview.jpg",
        "colors": ["#ffffff", "#000000", "#6366f1"],
        "features": ["Clean Typography", "Minimalist Layout", "Professional Look"],
        "category": "Professional",
    },
    "dark": {
        "id": "dark",
        "name": "Dark Mode",
        "description": "Modern dark theme with striking visuals",
        "preview": "/themes/dark-preview.jpg",
        "colors": ["#0f0f23", "#1e1e2e", "#8b5cf6"],
        "features": ["Dark Interface", "Gradient Accents", "Modern Design"],
        "category": "Modern",
    },
    "creative": {
        "id": "creative",
        "name": "Creative",
        "description": "Vibrant and artistic theme for creative professionals",
        "preview": "/themes/creative-preview.jpg",
        "colors": ["#ff6b6b", "#4ecdc4", "#45b7d1"],
        "features": ["Colorful Design", "Artistic Elements", "Creative Layouts"],
        "category": "Creative",
    },
    "corporate": {
        "id": "corporate",
        "name": "Corporate",
        "description": "Professional business theme with clean lines",
        "preview": "/themes/corporate-preview.jpg",
        "colors": ["#1e3a8a", "#3b82f6", "#60a5fa"],
        "features": ["Business Style", "Professional Colors", "Corporate Layout"],
        "category": "Professional",
    },
    "portfolio": {
        "id": "portfolio",
        "name": "Portfolio",
        "description": "Perfect for showcasing your work and projects",
        "preview": "/themes/portfolio-preview.jpg",
        "colors": ["#059669", "#10b981", "#34d399"],
        "features": ["Project Focus", "Gallery Style", "Work Showcase"],
        "category": "Portfolio",
    },
    "personal": {
        "id": "personal",
        "name": "Personal",
        "description": "Warm and friendly theme for personal branding",
        "preview": "/themes/personal-preview.jpg",
        "colors": ["#dc2626", "#ef4444", "#f87171"],
        "features": ["Personal Touch", "Warm Colors", "Friendly Design"],
        "category": "Personal",
    },
}


def get_available_themes() -> List[Dict[str, Any]]:
    return list(PORTFOLIO_THEMES.values())


def themes_by_category() -> Dict[str, List[Dict[str, Any]]]:
    grouped: Dict[str, List[Dict[str, Any]]] = {}
    for theme in PORTFOLIO_THEMES.values():
        grouped.setdefault(theme["category"], []).append(theme)
    return grouped


def resolve_theme(theme_id: Optional[str]) -> Dict[str, Any]:
    """Unknown or empty theme ids fall back to the default theme"""
    return PORTFOLIO_THEMES.get(theme_id or "", PORTFOLIO_THEMES[settings.DEFAULT_THEME])


def slugify_username(name: str) -> str:
    """'Ada Lovelace' -> 'ada-lovelace'"""
    return re.sub(r"\s+", "-", name.strip().lower())


def portfolio_url(username: str, theme_id: Optional[str] = None, base_url: Optional[str] = None) -> str:
    base = (base_url or settings.PUBLIC_SITE_URL).rstrip("/")
    url = f"{base}/u/{quote(username)}"
    if theme_id:
        url += f"?theme={quote(theme_id)}"
    return url
