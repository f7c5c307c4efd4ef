"""
api/routes/v1/users.py -- Account CRUD REST endpoints.

Routes:
  POST   /api/v1/users              -- create account; 201 public view
  GET    /api/v1/users              -- list accounts (public views)
  GET    /api/v1/users/{id}         -- single account
  PUT    /api/v1/users/{id}         -- partial update (PATCH is an alias)
  DELETE /api/v1/users/{id}         -- delete; 204
  POST   /api/v1/users/verify       -- check email + password; 200 or 401

Handlers are plain `def`, not `async def`. Creating, updating and verifying
run bcrypt, which holds the CPU for the whole work factor; FastAPI runs sync
handlers in its threadpool so one slow hash does not stall the event loop.

Domain errors (ValidationError / ConflictError / NotFoundError) propagate out
of the service and are mapped to 400 / 409 / 404 by the handler in
api/main.py. Every response body is built from AccountService output, which
is already redacted -- no handler sees an Account object.

Security:
  POST /users/verify is rate-limited separately (Settings.verify_rate_limit)
  and returns the same bad_credentials error for unknown email and wrong
  password. Cache-Control: no-store is added to all /users responses by the
  security headers middleware.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from accounts.service import AccountService
from api.dependencies import get_account_service
from api.limiter import limiter
from api.models import AccountCreate, AccountResponse, AccountUpdate, CredentialCheck, secret_value
from core.config import get_settings

router = APIRouter()


@router.post("/users", response_model=AccountResponse, status_code=201)
def create_user(body: AccountCreate, service: AccountService = Depends(get_account_service)) -> AccountResponse:
    """Create an account. 400 on missing/invalid fields, 409 on duplicate email."""
    view = service.create(body.name, body.email, secret_value(body.password))
    return AccountResponse(**view)


@router.get("/users", response_model=list[AccountResponse])
def list_users(service: AccountService = Depends(get_account_service)) -> list[AccountResponse]:
    """List every account. Password hashes are never included."""
    return [AccountResponse(**view) for view in service.list()]


@router.post("/users/verify", response_model=AccountResponse)
@limiter.limit(get_settings().verify_rate_limit)  # below @router so the router registers the limited wrapper
def verify_user(request: Request, body: CredentialCheck, service: AccountService = Depends(get_account_service)):
    """Check an email/password pair without issuing any session or token."""
    view = service.authenticate(body.email, body.password.get_secret_value())
    if view is None:
        return JSONResponse(
            status_code=401,
            content={"error": {"code": "bad_credentials", "message": "Invalid email or password."}},
        )
    return AccountResponse(**view)


@router.get("/users/{user_id}", response_model=AccountResponse)
def get_user(user_id: int, service: AccountService = Depends(get_account_service)) -> AccountResponse:
    return AccountResponse(**service.get(user_id))


@router.put("/users/{user_id}", response_model=AccountResponse)
@router.patch("/users/{user_id}", response_model=AccountResponse)
def update_user(
    user_id: int,
    body: AccountUpdate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Partially update an account.

    Omitted fields are left unchanged; omitting password keeps the stored
    hash. An empty body is a 400 ("no fields to update").
    """
    view = service.update(user_id, name=body.name, email=body.email, password=secret_value(body.password))
    return AccountResponse(**view)


@router.delete("/users/{user_id}", status_code=204)
def delete_user(user_id: int, service: AccountService = Depends(get_account_service)) -> Response:
    service.delete(user_id)
    return Response(status_code=204)
