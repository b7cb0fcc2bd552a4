"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST  /api/v1/users/signup                  -- create account; sets JWT cookie; 201
  POST  /api/v1/users/login                   -- password login; sets JWT cookie
  POST  /api/v1/users/logout                  -- clears cookie
  POST  /api/v1/users/forgotPassword          -- email a single-use reset link
  PATCH /api/v1/users/resetPassword/{token}   -- consume reset token; sets JWT cookie
  PATCH /api/v1/users/updateMyPassword        -- change password (requires auth)

Security:
  POST /login and POST /forgotPassword are rate-limited to 10 requests/minute per IP.
  Cache-Control: no-store on every response that carries a token.
  Wrong email and wrong password on /login produce the same 401 body.

Handlers are plain `def`: the store and bcrypt are blocking, so FastAPI runs
them in its threadpool and each request is an independent unit of work.
"""

from fastapi import APIRouter, Depends, Request, Response

from api.limiter import limiter
from api.models import (
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    MessageResponse,
    ResetPasswordRequest,
    SignupRequest,
    UpdatePasswordRequest,
    UserResponse,
)
from auth.dependencies import protect
from auth.models import AuthResult, User
from auth.reset import PasswordResetFlow
from auth.service import AuthService
from auth.tokens import clear_auth_cookie, set_auth_cookie

# Auth policy:
# - POST  /users/signup, /users/login, /users/logout:   public
# - POST  /users/forgotPassword:                        public, rate-limited
# - PATCH /users/resetPassword/{token}:                 public -- the token is the credential
# - PATCH /users/updateMyPassword:                      requires auth (protect)
router = APIRouter(prefix="/users")


def _send_auth(request: Request, response: Response, result: AuthResult) -> AuthResponse:
    set_auth_cookie(response, result.token, request.app.state.settings)
    response.headers["Cache-Control"] = "no-store"
    return AuthResponse(token=result.token, user=UserResponse.from_public(result.user))


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/signup", response_model=AuthResponse, status_code=201)
def signup(request: Request, response: Response, body: SignupRequest) -> AuthResponse:
    """Create an account with the default role and log it in."""
    auth: AuthService = request.app.state.auth_service
    result = auth.signup(body.name, body.email, body.password, body.password_confirm)
    return _send_auth(request, response, result)


@router.post("/login", response_model=AuthResponse)
@limiter.limit("10/minute")  # brute-force mitigation
def login(request: Request, response: Response, body: LoginRequest) -> AuthResponse:
    """Authenticate with email and password; set JWT cookie."""
    auth: AuthService = request.app.state.auth_service
    result = auth.login(body.email, body.password)
    return _send_auth(request, response, result)


@router.post("/logout", response_model=MessageResponse)
def logout(response: Response) -> MessageResponse:
    """Clear the JWT cookie. The token itself stays valid until it expires."""
    clear_auth_cookie(response)
    return MessageResponse(message="Logged out.")


@router.post("/forgotPassword", response_model=MessageResponse)
@limiter.limit("10/minute")
def forgot_password(request: Request, body: ForgotPasswordRequest) -> MessageResponse:
    """Email a reset link valid for 10 minutes.

    404 for an unknown email, 500 if the email could not be sent (the token
    is withdrawn again in that case).
    """
    flow: PasswordResetFlow = request.app.state.reset_flow

    base_url = request.app.state.settings.public_base_url.rstrip("/")

    def build_reset_url(raw_token: str) -> str:
        if base_url:
            return base_url + request.app.url_path_for("reset_password", token=raw_token)
        return str(request.url_for("reset_password", token=raw_token))

    flow.forgot_password(body.email, build_reset_url)
    return MessageResponse(message="Token sent to email!")


@router.patch("/resetPassword/{token}", response_model=AuthResponse, name="reset_password")
def reset_password(request: Request, response: Response, token: str, body: ResetPasswordRequest) -> AuthResponse:
    """Set a new password with a reset token and log the user in."""
    flow: PasswordResetFlow = request.app.state.reset_flow
    result = flow.consume_reset(token, body.password, body.password_confirm)
    return _send_auth(request, response, result)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.patch("/updateMyPassword", response_model=AuthResponse)
def update_my_password(
    request: Request,
    response: Response,
    body: UpdatePasswordRequest,
    current_user: User = Depends(protect),
) -> AuthResponse:
    """Change the caller's password. Older tokens stop working; a new one is returned."""
    auth: AuthService = request.app.state.auth_service
    result = auth.update_password(current_user.id, body.password_current, body.password, body.password_confirm)
    return _send_auth(request, response, result)
