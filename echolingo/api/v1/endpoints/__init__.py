"""API endpoint modules for v1."""

from echolingo.api.v1.endpoints import (
    admin,
    auth,
    health,
    news,
    providers,
    translate,
    tts,
    user_data,
)

__all__ = [
    "admin",
    "auth",
    "health",
    "news",
    "providers",
    "translate",
    "tts",
    "user_data",
]
