import logging
import os
import sys
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    notion_api_key: str
    database_id: Optional[str] = None
    output_dir: Path = Path("thoughts")
    images_subdir: str = "images"
    site_author: str = ""
    git_remote: str = "origin"
    git_branch: str = "main"
    log_level: str = "INFO"

    @property
    def images_dir(self) -> Path:
        return self.output_dir / self.images_subdir

    @classmethod
    def from_env(cls, **overrides) -> "Settings":
        """Load settings from the environment (and a .env file if present).

        Keyword arguments that are not None take precedence over the
        environment.
        """
        load_dotenv()
        token = os.getenv("NOTION_API_KEY")
        if not token:
            raise ValueError("NOTION_API_KEY not found in environment variables")

        values = {
            "notion_api_key": token,
            "database_id": os.getenv("NOTION_DATABASE_ID"),
            "output_dir": os.getenv("NOTION_PUBLISHER_OUTPUT_DIR", "thoughts"),
            "site_author": os.getenv("SITE_AUTHOR", ""),
            "git_remote": os.getenv("GIT_REMOTE", "origin"),
            "git_branch": os.getenv("GIT_BRANCH", "main"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})
        return cls(**values)


def configure_logging(level: str = "INFO"):
    root = logging.getLogger()
    root.setLevel(level.upper())
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    )
    root.handlers = [handler]
