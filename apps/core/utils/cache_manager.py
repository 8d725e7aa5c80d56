import logging

from django.core.cache import cache

from .cache_key_manager import CacheKeyManager

logger = logging.getLogger(__name__)


class CacheManager:
    """
    Centralized invalidation of cache keys per resource,
    driven by settings.CACHE_KEY_TEMPLATES.
    """

    @staticmethod
    def invalidate(resource_name: str, **kwargs):
        """
        Invalidate every key of `resource_name` that can be built from kwargs.

        Example:
            CacheManager.invalidate("negotiation", sku="A-1")
        """
        templates = CacheKeyManager.get_available_templates(resource_name)
        if not templates:
            logger.warning(f"No cache templates found for resource '{resource_name}'")
            return

        to_delete = []
        for key_name in templates:
            try:
                to_delete.append(
                    CacheKeyManager.make_key(resource_name, key_name, **kwargs)
                )
            except KeyError:
                # Template needs arguments we were not given; skip it
                continue

        if to_delete:
            cache.delete_many(to_delete)
            logger.debug(f"Invalidated cache keys: {to_delete}")
