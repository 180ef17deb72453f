"""
api/routes/auth.py -- Registration and sign-in endpoints.

Routes:
  POST /signup   -- validate, register, return a bearer token (201)
  POST /signin   -- check email + password, return a bearer token (200)

Both share the "auth" rate-limit group, so repeated sign-in attempts throttle
independently of ordinary browsing. Responses carry Cache-Control: no-store
because they contain a credential.
"""

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.limiter import auth_limit
from api.models import AuthResponse, ErrorResponse, SigninRequest, SignupRequest
from auth.service import AccountService

# Auth policy:
# - POST /signup: public -- creates the account
# - POST /signin: public -- exchanges credentials for a token
router = APIRouter()

_ERRORS = {400: {"model": ErrorResponse}, 403: {"model": ErrorResponse}, 409: {"model": ErrorResponse}}


def _token_response(status_code: int, body: AuthResponse) -> JSONResponse:
    resp = JSONResponse(status_code=status_code, content=body.model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp


@router.post("/signup", response_model=AuthResponse, status_code=201, responses=_ERRORS)
@auth_limit
async def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create an account and sign it in.

    Every validation rule runs before the store is touched; a 400 lists all
    violations. A duplicate email/username/phone/KTU ID yields 409.
    """
    accounts: AccountService = request.app.state.accounts
    user, token = await accounts.sign_up(body.model_dump())
    return _token_response(201, AuthResponse.from_user(user, token))


@router.post("/signin", response_model=AuthResponse, responses=_ERRORS)
@auth_limit
async def signin(request: Request, body: SigninRequest) -> JSONResponse:
    """Exchange email + password for a 24h bearer token."""
    accounts: AccountService = request.app.state.accounts
    user, token = await accounts.sign_in(body.email, body.password)
    return _token_response(200, AuthResponse.from_user(user, token))
