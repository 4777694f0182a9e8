"""FastAPI dependency guarding the oracle mutation endpoints.

Usage:
    from src.pm_gateway.auth.dependencies import require_oracle_operator

    @router.post("/run", dependencies=[Depends(require_oracle_operator)])
    async def run(...): ...

With ORACLE_CRON_SECRET unset (local dev) every caller is accepted.
"""

import hmac

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from config.settings import settings
from src.pm_common.errors import OracleUnauthorizedError

# auto_error=False: a missing header is reported as our own 6002, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


async def require_oracle_operator(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> None:
    secret = settings.ORACLE_CRON_SECRET
    if not secret:
        return
    if credentials is None or not hmac.compare_digest(
        credentials.credentials.encode(), secret.encode()
    ):
        raise OracleUnauthorizedError()
