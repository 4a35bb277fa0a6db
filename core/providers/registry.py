"""
Registered device providers, keyed by provider_id.

Lookups fail closed: an unknown id or a provider without configured
credentials behaves as "not available".
"""
import logging
from typing import Dict, Optional

from .base import IntegrationProvider
from .garmin import GarminProvider

logger = logging.getLogger(__name__)

_PROVIDERS: Dict[str, IntegrationProvider] = {}


def register_provider(provider: IntegrationProvider):
    if provider.provider_id in _PROVIDERS:
        logger.warning("provider.registry.replaced", extra={"provider_id": provider.provider_id})
    _PROVIDERS[provider.provider_id] = provider


def get_provider(provider_id: str) -> Optional[IntegrationProvider]:
    return _PROVIDERS.get(provider_id)


register_provider(GarminProvider())
