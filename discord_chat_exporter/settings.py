"""Tunables for collection, caching and rendering.

Defaults match the behaviour of the browser extension this tool grew out of.
A few of them can be overridden through environment variables, which is
mostly useful for slow connections (longer settle delay) and for tests.
"""

import os
from typing import Optional

from pydantic import BaseModel


class ExportSettings(BaseModel):
    """Numeric knobs used across the export pipeline."""

    # Scroll/collection loop
    scroll_delay: float = 0.6  # seconds to wait for the view to settle
    max_iterations: int = 500
    max_top_scroll_attempts: int = 500
    stall_limit_at_bottom: int = 8
    stall_limit_stuck: int = 11
    bottom_tolerance_px: int = 50
    stuck_delta_px: int = 5
    top_threshold_px: int = 100
    scroll_step_ratio: float = 0.8

    # Extraction
    avatar_size: int = 128
    author_sibling_depth: int = 10
    avatar_sibling_depth: int = 20

    # Assets
    image_cache_size: int = 200
    prefetch_batch_size: int = 10
    fetch_timeout: float = 15.0

    # Rendering
    render_batch_size: int = 50
    render_yield_delay: float = 0.005

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "ExportSettings":
        """Build settings from DISCORD_EXPORT_* environment variables.

        Unset or empty variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, str] = {}
        for field_name, var_name in _ENV_OVERRIDES.items():
            value = env.get(var_name, "").strip()
            if value:
                overrides[field_name] = value
        return cls(**overrides)


_ENV_OVERRIDES = {
    "scroll_delay": "DISCORD_EXPORT_SCROLL_DELAY",
    "max_iterations": "DISCORD_EXPORT_MAX_ITERATIONS",
    "fetch_timeout": "DISCORD_EXPORT_FETCH_TIMEOUT",
}


DEFAULT_SETTINGS = ExportSettings()
