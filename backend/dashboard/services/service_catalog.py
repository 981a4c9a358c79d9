"""Services the dashboard knows how to configure, grouped as in the settings panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional

AI_SERVICES = "ai_services"
SOCIAL_MEDIA = "social_media"
UNIFIED_SOCIAL = "unified_social"


@dataclass(frozen=True)
class ServiceInfo:
    name: str
    category: str
    description: str
    # Environment variable consulted when no key is stored for the service
    env_var: Optional[str] = None


_SERVICES = (
    ServiceInfo("Claude AI", AI_SERVICES,
                "Anthropic's Claude for intelligent conversations and content generation",
                "ANTHROPIC_API_KEY"),
    ServiceInfo("GPT-4", AI_SERVICES,
                "OpenAI's GPT-4 for advanced text generation and analysis",
                "OPENAI_API_KEY"),
    ServiceInfo("DALL-E 3", AI_SERVICES,
                "OpenAI's DALL-E 3 for AI-powered image generation",
                "OPENAI_API_KEY"),
    ServiceInfo("Instagram", SOCIAL_MEDIA, "Enter your Instagram username/handle"),
    ServiceInfo("Facebook", SOCIAL_MEDIA, "Enter your Facebook page name"),
    ServiceInfo("Twitter / X", SOCIAL_MEDIA, "Enter your Twitter/X handle"),
    ServiceInfo("Threads", SOCIAL_MEDIA, "Enter your Threads username"),
    ServiceInfo("TikTok", SOCIAL_MEDIA, "Enter your TikTok username"),
    ServiceInfo("Bluesky", SOCIAL_MEDIA, "Enter your Bluesky handle"),
    ServiceInfo("Ayrshare", UNIFIED_SOCIAL,
                "Post to multiple platforms simultaneously with one API",
                "AYRSHARE_API_KEY"),
    ServiceInfo("Buffer", UNIFIED_SOCIAL,
                "Schedule and manage social media posts across platforms",
                "BUFFER_ACCESS_TOKEN"),
    ServiceInfo("Hootsuite", UNIFIED_SOCIAL,
                "Enterprise social media management and analytics",
                "HOOTSUITE_ACCESS_TOKEN"),
)

SERVICES: Dict[str, ServiceInfo] = {service.name: service for service in _SERVICES}


def get_service(name: str) -> Optional[ServiceInfo]:
    return SERVICES.get(name)


def iter_services() -> Iterator[ServiceInfo]:
    return iter(_SERVICES)


def is_social_account(name: str) -> bool:
    """Social account entries hold a public handle rather than a secret."""
    service = SERVICES.get(name)
    return bool(service and service.category == SOCIAL_MEDIA)


def env_var_for(name: str) -> Optional[str]:
    service = SERVICES.get(name)
    return service.env_var if service else None
