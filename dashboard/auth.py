"""Optional HTTP basic auth for the dashboard API."""

import logging
import secrets

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from dashboard import config

logger = logging.getLogger("agile-dashboard.auth")

REALM = "AgileAiAgents Dashboard"

security = HTTPBasic(auto_error=False, realm=REALM)


async def require_auth(request: Request, credentials: HTTPBasicCredentials | None = Depends(security)) -> str:
    """Return the authenticated user name, or ``anonymous`` when auth is disabled."""
    if not config.auth_enabled():
        return "anonymous"

    challenge = {"WWW-Authenticate": f'Basic realm="{REALM}"'}
    if credentials is None:
        logger.warning(f"Unauthorized access attempt: {request.method} {request.url.path}")
        raise HTTPException(status_code=401, detail="Authentication required", headers=challenge)

    username, password = config.auth_credentials()
    user_ok = secrets.compare_digest(credentials.username.encode(), username.encode())
    password_ok = secrets.compare_digest(credentials.password.encode(), password.encode())
    if not (user_ok and password_ok):
        logger.warning(f"Authentication failed for user '{credentials.username}'")
        raise HTTPException(status_code=401, detail="Invalid credentials", headers=challenge)

    return credentials.username
