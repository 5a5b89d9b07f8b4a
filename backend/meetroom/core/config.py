import json
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_ICE_SERVERS = [{"urls": "stun:stun.l.google.com:19302"}]


def _ice_servers_from_env() -> List[Dict[str, Any]]:
    raw = os.getenv("ICE_SERVERS")
    if not raw:
        return list(DEFAULT_ICE_SERVERS)
    servers = json.loads(raw)
    if not isinstance(servers, list):
        raise RuntimeError("ICE_SERVERS must be a JSON list")
    return servers


def _cors_origins_from_env() -> List[str]:
    raw = os.getenv("CORS_ORIGINS", "*")
    return [o.strip() for o in raw.split(",") if o.strip()]


@dataclass
class Settings:
    database_url: str = field(
        default_factory=lambda: os.getenv("DATABASE_URL", "sqlite:///./meetroom.db")
    )
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    cors_origins: List[str] = field(default_factory=_cors_origins_from_env)
    ice_servers: List[Dict[str, Any]] = field(default_factory=_ice_servers_from_env)
