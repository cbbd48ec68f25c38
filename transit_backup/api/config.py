"""Configuration for FastAPI application."""

import json
from typing import List, Optional, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings


def _parse_list(v):
    """Accept a JSON array string, a comma-separated string or a list."""
    if isinstance(v, str):
        v = v.strip()
        if not v:
            return []
        if v.startswith('['):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                return [v]
        return [item.strip() for item in v.split(",") if item.strip()]
    return v


class Settings(BaseSettings):
    # API Configuration
    api_prefix: str = "/api/v1"
    api_title: str = "transit-backup API"
    api_version: str = "1.0.0"
    allowed_origins: Union[str, List[str]] = ["*"]

    # Bearer tokens accepted as super-operator credentials; empty leaves the API open
    operator_tokens: Union[str, List[str]] = []

    @field_validator('allowed_origins', 'operator_tokens', mode='before')
    @classmethod
    def parse_lists(cls, v):
        return _parse_list(v)

    # Job tracking
    redis_url: Optional[str] = None
    redis_password: Optional[str] = None

    # Run the retention sweeper inside the API process
    enable_retention_sweeper: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"  # Ignore extra environment variables


settings = Settings()
