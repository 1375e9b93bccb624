# =============================================================================
# core/config.py  -  Runtime settings from the environment
# =============================================================================
#
# Everything tunable lives in environment variables (a .env file works too;
# tools/mcp_server.py calls load_dotenv() before building Settings).
#
#   NPS_API_KEY                   developer.nps.gov key
#   RECGOV_API_KEY                ridb.recreation.gov key
#   HTTP_TIMEOUT_SECONDS          per-request timeout (default 10)
#   TRAIL_ENRICH_WORKERS          detail-fetch pool size, clamped to 1..10 (default 5)
#   TRAIL_ENRICH_TIMEOUT_SECONDS  budget for the whole detail fan-out (default 20)
#   FORECAST_DAYS                 days requested from Open-Meteo, 1..16 (default 7)
#   LOG_LEVEL                     logging level for the tool server (default INFO)
# =============================================================================

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

logger = logging.getLogger(__name__)

MAX_ENRICH_WORKERS = 10
MAX_FORECAST_DAYS = 16   # Open-Meteo's free tier limit


def _env_number(env: Mapping[str, str], name: str, default: float, cast=float):
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        logger.warning("Ignoring malformed %s=%r, using %s", name, raw, default)
        return default


def _log_level(raw: str) -> str:
    level = raw.strip().upper()
    if isinstance(logging.getLevelName(level), int):
        return level
    logger.warning("Ignoring unknown LOG_LEVEL=%r, using INFO", raw)
    return "INFO"


@dataclass(frozen=True)
class Settings:
    """Immutable snapshot of the environment at startup."""

    nps_api_key: str = ""
    recgov_api_key: str = ""
    http_timeout_seconds: float = 10.0
    trail_enrich_workers: int = 5
    trail_enrich_timeout_seconds: float = 20.0
    forecast_days: int = 7
    log_level: str = "INFO"

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        workers = _env_number(env, "TRAIL_ENRICH_WORKERS", 5, int)
        days = _env_number(env, "FORECAST_DAYS", 7, int)
        return cls(
            nps_api_key=env.get("NPS_API_KEY", ""),
            recgov_api_key=env.get("RECGOV_API_KEY", ""),
            http_timeout_seconds=_env_number(env, "HTTP_TIMEOUT_SECONDS", 10.0),
            trail_enrich_workers=max(1, min(workers, MAX_ENRICH_WORKERS)),
            trail_enrich_timeout_seconds=_env_number(env, "TRAIL_ENRICH_TIMEOUT_SECONDS", 20.0),
            forecast_days=max(1, min(days, MAX_FORECAST_DAYS)),
            log_level=_log_level(env.get("LOG_LEVEL", "INFO")),
        )
