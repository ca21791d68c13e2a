# config.py
import os
from functools import lru_cache

from dotenv import load_dotenv
load_dotenv()

import logging
from logging_utils import configure_logging

from flightstat_proxy.config import (
    ProxySettings,
    cors_origin_regex_from_env,
    cors_origins_from_env,
    settings_from_env,
)

configure_logging()
logger = logging.getLogger("flightstat.config")

VERSION = "1.9.0"
PORT = int(os.getenv("PORT", "3001"))

CORS_ORIGINS = cors_origins_from_env()
CORS_ORIGIN_REGEX = cors_origin_regex_from_env()


def has_api_key() -> bool:
    return bool((os.getenv("AEROAPI_KEY") or "").strip())


@lru_cache(maxsize=1)
def get_settings() -> ProxySettings:
    """Read once at startup; a missing AEROAPI_KEY aborts the service."""
    settings = settings_from_env()
    policy = settings.window_policy
    logger.info(
        f"Config: base_url={settings.aeroapi_base_url}, max_pages={settings.max_pages}, "
        f"timeout={settings.timeout}s, lookback={policy.lookback}, lookahead={policy.lookahead}, "
        f"bounds=-{policy.lower_bound}/+{policy.upper_bound}, active_only={settings.active_only}"
    )
    return settings
