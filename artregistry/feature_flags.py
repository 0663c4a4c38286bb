"""
Feature flags for the art registry.

Uses pydantic-settings (FastAPI-recommended) for typed, validated,
environment-variable-backed feature flags.

Toggle via env vars: FEATURE_IMAGE_VARIANTS=false
All flags default to True (on). Disable via env vars when needed.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings


class FeatureFlags(BaseSettings):
    """Feature flags backed by environment variables."""

    # Fetch and cache remote photos during imports
    feature_media_caching: bool = True
    # Resize thumbnail/medium/large on the fly in the image proxy
    feature_image_variants: bool = True

    model_config = {
        "env_prefix": "",
        "case_sensitive": False,
    }


@lru_cache()
def get_feature_flags() -> FeatureFlags:
    """Cached singleton. Use FastAPI Depends() for injection."""
    return FeatureFlags()
