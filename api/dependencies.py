"""
api/dependencies.py -- FastAPI Depends() helpers for the account routes.

The AccountService is built once in the lifespan (api/main.py) and stored on
app.state. Routes receive it through get_account_service() rather than
importing a module-level instance, so tests can swap in an isolated store by
replacing the lifespan.
"""

from __future__ import annotations

from fastapi import Request

from accounts.service import AccountService


def get_account_service(request: Request) -> AccountService:
    """Return the AccountService wired into app.state at startup.

    Use as a FastAPI dependency:
        @router.get("/users")
        def route(service: AccountService = Depends(get_account_service)): ...
    """
    return request.app.state.accounts
