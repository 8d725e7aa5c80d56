import logging
from typing import Dict

from django.conf import settings

logger = logging.getLogger(__name__)


class CacheKeyManager:
    """
    Centralized creation of cache keys based on templates defined in
    settings.CACHE_KEY_TEMPLATES.

    Usage:
        key = CacheKeyManager.make_key("negotiation", "stats", sku="TSHIRT-01")
        # → "negotiation:stats:TSHIRT-01"

    The cache backend prepends its own KEY_PREFIX.
    """

    @staticmethod
    def _get_template(resource_name: str, key_name: str) -> str:
        templates = getattr(settings, "CACHE_KEY_TEMPLATES", {})
        if resource_name not in templates:
            logger.error(
                f"[CacheKeyManager] No templates configured for resource '{resource_name}'"
            )
            raise KeyError(f"No templates for resource '{resource_name}'")
        resource_templates = templates[resource_name]
        if key_name not in resource_templates:
            logger.error(
                f"[CacheKeyManager] No template named '{key_name}' for resource '{resource_name}'"
            )
            raise KeyError(f"No key '{key_name}' for resource '{resource_name}'")
        return resource_templates[key_name]

    @staticmethod
    def make_key(resource_name: str, key_name: str, **kwargs) -> str:
        """
        Build an exact cache key.

        Example:
            CacheKeyManager.make_key("negotiation", "stats", sku="A-1")
            → "negotiation:stats:A-1"
        """
        raw_template = CacheKeyManager._get_template(resource_name, key_name)
        try:
            return raw_template.format(**kwargs)
        except KeyError as e:
            missing = e.args[0]
            logger.error(
                f"[CacheKeyManager] Missing argument '{missing}' when formatting '{raw_template}'"
            )
            raise

    @staticmethod
    def get_available_templates(resource_name: str) -> Dict[str, str]:
        """Get all available cache key templates for a resource."""
        templates = getattr(settings, "CACHE_KEY_TEMPLATES", {})
        return templates.get(resource_name, {})
