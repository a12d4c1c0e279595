"""Runtime settings read from the environment."""

import os

from pydantic import BaseModel

from src.memory.store import MEMORY_KEY


class Settings(BaseModel):
    """Deployment settings.

    Every value comes from an environment variable; `.env` files are
    loaded by the CLI and web entry points before this is built.
    """

    redis_url: str | None = None
    memory_key: str = MEMORY_KEY
    memory_file: str = "data/prediction_memory.json"
    cache_db: str = "data/cache.db"
    admin_secret: str | None = None
    scoring_profile: str = "honest"

    @classmethod
    def from_env(cls) -> "Settings":
        """
        Build settings from environment variables.

        REDIS_URL, MEMORY_KEY, MEMORY_FILE, CACHE_DB, ADMIN_SECRET and
        SCORING_PROFILE are read; unset or empty values use the defaults.
        The admin endpoint stays disabled unless ADMIN_SECRET is set.
        """
        defaults = cls()
        return cls(
            redis_url=os.environ.get("REDIS_URL") or None,
            memory_key=os.environ.get("MEMORY_KEY") or defaults.memory_key,
            memory_file=os.environ.get("MEMORY_FILE") or defaults.memory_file,
            cache_db=os.environ.get("CACHE_DB") or defaults.cache_db,
            admin_secret=os.environ.get("ADMIN_SECRET") or None,
            scoring_profile=os.environ.get("SCORING_PROFILE") or defaults.scoring_profile,
        )
