import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

# Load the appropriate .env file on module import
env = os.environ.get("SIMPLEORM_ENV", "development").lower()
env_file = f".env.{env}"
if os.path.exists(env_file):
    load_dotenv(env_file)
else:
    # Fall back to the default .env file
    load_dotenv()


TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class Config:
    environment: str
    database_url: Optional[str]
    database: str
    cache_schema: bool

    @classmethod
    def from_env(cls) -> "Config":
        return cls(
            environment=env,
            database_url=os.environ.get("DATABASE_URL"),
            database=os.environ.get("SIMPLEORM_DATABASE", "public"),
            cache_schema=os.environ.get("SIMPLEORM_CACHE_SCHEMA", "false").lower() in TRUTHY,
        )


config = Config.from_env()
