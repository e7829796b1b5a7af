"""
config.py — Settings and logging for the Essembi chat integration
==================================================================
All configuration comes from environment variables. A ``.env`` file next
to the working directory is loaded first, so local development only needs
a copy of ``.env.example``.

  TEAMS_INTEGRATION_KEY    shared secret sent as the backend bearer token
  SERVICE_BASE_URL         backend base URL (default https://api.essembi.ai)
  SUPPORT_URL / DOCS_URL   links shown on error and documentation cards
  BOT_ID                   the integration's own account id (skipped on welcome)
  CONNECTOR_TOKEN          bearer token for the platform roster API, if any
  SESSION_TTL_SECONDS      lifetime of a pending environment choice
  BACKEND_TIMEOUT_SECONDS  unset means no client-side timeout
  LOG_LEVEL, DEBUG, HOST, PORT
"""

import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_SERVICE_BASE_URL = "https://api.essembi.ai"
DEFAULT_SUPPORT_URL = "https://essembi.com/pages/support"
DEFAULT_DOCS_URL = "https://essembi.com/pages/docs"


class Settings(BaseModel):
    integration_key: str = ""
    service_base_url: str = DEFAULT_SERVICE_BASE_URL
    support_url: str = DEFAULT_SUPPORT_URL
    docs_url: str = DEFAULT_DOCS_URL
    bot_id: Optional[str] = None
    connector_token: Optional[str] = None
    session_ttl_seconds: int = 3600
    backend_timeout_seconds: Optional[float] = None
    log_level: str = "INFO"
    debug: bool = False
    host: str = "0.0.0.0"
    port: int = 3978


def _env_flag(value: Optional[str]) -> bool:
    return (value or "").strip().lower() in ("1", "true", "yes", "on")


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build Settings from the process environment.

    ``env_file`` defaults to python-dotenv's search for ``.env``. Values
    already present in the environment win over the file.
    """
    load_dotenv(env_file)

    timeout = os.getenv("BACKEND_TIMEOUT_SECONDS")
    return Settings(
        integration_key=os.getenv("TEAMS_INTEGRATION_KEY", ""),
        service_base_url=os.getenv("SERVICE_BASE_URL") or DEFAULT_SERVICE_BASE_URL,
        support_url=os.getenv("SUPPORT_URL") or DEFAULT_SUPPORT_URL,
        docs_url=os.getenv("DOCS_URL") or DEFAULT_DOCS_URL,
        bot_id=os.getenv("BOT_ID") or None,
        connector_token=os.getenv("CONNECTOR_TOKEN") or None,
        session_ttl_seconds=int(os.getenv("SESSION_TTL_SECONDS", "3600")),
        backend_timeout_seconds=float(timeout) if timeout else None,
        log_level=os.getenv("LOG_LEVEL", "INFO"),
        debug=_env_flag(os.getenv("DEBUG")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3978")),
    )


def setup_logging(level: str = "INFO") -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # Request lines are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
