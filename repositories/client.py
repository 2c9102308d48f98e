"""
Supabase client construction.

This module contains *only* the database connection setup. Unlike a module-level
singleton, the client is built once by the application at startup (see
`api.main.create_app`) and passed explicitly to every repository function, so
tests and scripts can supply their own client.

Settings used (see `api.settings.Settings`):
- SUPABASE_URL: Your Supabase project URL
- SUPABASE_KEY: Your Supabase API key (use a server-side key only on the backend)
"""

from __future__ import annotations

import logging

# The dependency is `supabase` (supabase-py). If your editor can't resolve it,
# install it in your environment: `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

logger = logging.getLogger(__name__)


def create_supabase_client(url: str | None, key: str | None) -> Client:
    """
    Build the Supabase client used for the lifetime of the process.

    Raises:
    - RuntimeError if the URL or key is missing.
    """

    if not url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    logger.info("Connecting to Supabase at %s", url)
    return create_client(url, key)


__all__ = ["Client", "create_supabase_client"]
