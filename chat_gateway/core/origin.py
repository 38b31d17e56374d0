"""
Origin allow-list checks and CORS header construction for the chat endpoint
"""
from typing import Dict, List, Optional

from chat_gateway.core.config import settings

ALLOWED_METHODS = "POST, OPTIONS"
ALLOWED_HEADERS = "Content-Type, Authorization"
PREFLIGHT_MAX_AGE = "86400"


def parse_allowed_origins(raw: Optional[str]) -> List[str]:
    """Split a comma-separated allow-list, dropping blanks"""
    return [item.strip() for item in (raw or "").split(",") if item.strip()]


class OriginGuard:
    """Decides whether a browser origin may call the mutating chat endpoint"""

    def __init__(self, allowed_origins: Optional[str]):
        self.allowed = parse_allowed_origins(allowed_origins)

    def allows(self, origin: Optional[str]) -> bool:
        if not origin:
            return False
        return origin in self.allowed

    def cors_headers(self, origin: Optional[str], extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Headers for an actual (non-preflight) response"""
        headers = {"Vary": "Origin", **(extra or {})}
        if self.allows(origin):
            headers["Access-Control-Allow-Origin"] = origin
        return headers

    def preflight_headers(self, origin: Optional[str]) -> Dict[str, str]:
        """Headers for an OPTIONS preflight response"""
        if not self.allows(origin):
            # "null" never matches a real origin, so the browser blocks the read
            return {
                "Access-Control-Allow-Origin": "null",
                "Vary": "Origin",
                "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
            }
        return {
            "Access-Control-Allow-Origin": origin,
            "Vary": "Origin",
            "Access-Control-Allow-Methods": ALLOWED_METHODS,
            "Access-Control-Allow-Headers": ALLOWED_HEADERS,
            "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
        }


def get_origin_guard() -> OriginGuard:
    """FastAPI dependency returning a guard built from current settings"""
    return OriginGuard(settings.ALLOWED_ORIGINS)
