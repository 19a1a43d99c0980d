# teachtune/api/dependencies/internal_auth.py
import secrets
from typing import Optional

from fastapi import Header, HTTPException, status

from teachtune.core.config import get_settings

# Environments where /internal may stay open while no key is configured
_OPEN_ENVIRONMENTS = frozenset({"local", "test"})


def _key_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def verify_internal_api_key(
    internal_api_key: Optional[str] = Header(
        default=None,
        alias="X-Internal-Api-Key",
        description=(
            "Shared secret for the scheduler-facing /internal endpoints "
            "(schedule regeneration, upcoming-lesson scans)."
        ),
    ),
) -> None:
    """
    Guard for the /internal routes, which act on every teacher at once.

    - No INTERNAL_API_KEY in local/test: the routes are open.
    - No INTERNAL_API_KEY anywhere else: 500, the deployment is misconfigured.
    - A configured key must be sent in X-Internal-Api-Key, otherwise 401.
    """
    settings = get_settings()
    env = (settings.APP_ENV or "local").lower()
    expected = settings.INTERNAL_API_KEY

    if not expected:
        if env in _OPEN_ENVIRONMENTS:
            return
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"INTERNAL_API_KEY is required when APP_ENV={env}.",
        )

    if not _key_matches(internal_api_key, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing internal API key.",
        )
