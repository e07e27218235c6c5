"""Runtime configuration read from the environment.

Call ``load_dotenv()`` before ``Settings.from_env()`` to pick up a local
.env file. Missing required values raise ConfigError, the only error that
stops the process at startup.
"""

import os
from typing import Dict, List, Mapping, Optional

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, HttpUrl, ValidationError, field_validator

# Repositories watched for each role category, in check order
REPOSITORIES: Dict[str, List[str]] = {
    "internship": [
        "https://github.com/SimplifyJobs/Summer2026-Internships",
        "https://github.com/vanshb03/Summer2026-Internships",
    ],
    "new_grad": [
        "https://github.com/SimplifyJobs/New-Grad-Positions",
        "https://github.com/vanshb03/New-Grad-2025",
    ],
}

LISTINGS_PATH = os.path.join(".github", "scripts", "listings.json")


class ConfigError(Exception):
    """Required configuration is missing or invalid."""


class DiscordIntegration(BaseModel):
    webhook_url: HttpUrl
    role_id: Optional[str] = None

    @property
    def url(self) -> str:
        return str(self.webhook_url).rstrip("/")


class Category(BaseModel):
    name: str
    discord: DiscordIntegration
    repositories: List[str]


class Settings(BaseModel):
    cron_pattern: str
    categories: List[Category]
    db_path: str = "listingwatch.db"
    cache_dir: str = os.path.join("cache", "repos")
    update_queue_interval: float = 1.0
    max_post_age: float = 7 * 24 * 60 * 60
    http_timeout: float = 30.0

    @field_validator("cron_pattern")
    @classmethod
    def _valid_crontab(cls, value: str) -> str:
        CronTrigger.from_crontab(value)
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ

        def get(key: str) -> Optional[str]:
            value = env.get(key)
            return value if value else None

        missing = [
            key for key in ("CRON_PATTERN", "INTERNSHIP_WEBHOOK_URL", "NEW_GRAD_WEBHOOK_URL")
            if get(key) is None
        ]
        if missing:
            raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")

        values = {
            "cron_pattern": get("CRON_PATTERN"),
            "categories": [
                {
                    "name": "internship",
                    "discord": {
                        "webhook_url": get("INTERNSHIP_WEBHOOK_URL"),
                        "role_id": get("INTERNSHIP_ROLE_ID"),
                    },
                    "repositories": REPOSITORIES["internship"],
                },
                {
                    "name": "new_grad",
                    "discord": {
                        "webhook_url": get("NEW_GRAD_WEBHOOK_URL"),
                        "role_id": get("NEW_GRAD_ROLE_ID"),
                    },
                    "repositories": REPOSITORIES["new_grad"],
                },
            ],
        }
        optional = {
            "db_path": "LISTINGWATCH_DB",
            "cache_dir": "LISTINGWATCH_CACHE_DIR",
            "update_queue_interval": "UPDATE_QUEUE_INTERVAL",
            "max_post_age": "MAX_POST_AGE",
            "http_timeout": "HTTP_TIMEOUT",
        }
        for field, key in optional.items():
            if get(key) is not None:
                values[field] = get(key)

        try:
            return cls.model_validate(values)
        except ValidationError as e:
            raise ConfigError(f"Invalid configuration: {e}") from e
