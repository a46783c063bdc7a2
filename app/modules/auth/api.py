from __future__ import annotations

import base64
from io import BytesIO

import segno
from fastapi import APIRouter, Body, Depends, Request

from app.core.auth.dependencies import AuthPrincipal, get_principal, require_full_principal
from app.core.auth.rate_limit import AttemptRateLimiter, get_login_rate_limiter, get_totp_rate_limiter
from app.core.exceptions import InvalidCredentialsError, InvalidTotpCodeError, RateLimitError
from app.dependencies import AuthContext, get_auth_context
from app.modules.auth.schemas import (
    AccountResponse,
    AuthResponse,
    ForgotPasswordRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
    StaffRegisterRequest,
    TotpChallengeResponse,
    TotpCodeRequest,
    TotpSetupResponse,
)
from app.modules.auth.types import AuthResult, LoginChallenge
from app.modules.shared.schemas import MessageResponse

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _client_key(request: Request, *, prefix: str) -> str:
    return f"{prefix}:{request.client.host if request.client else 'unknown'}"


def _ensure_not_rate_limited(limiter: AttemptRateLimiter, key: str) -> None:
    retry_after = limiter.check(key)
    if retry_after is not None:
        raise RateLimitError(
            f"Too many attempts. Try again in {retry_after} seconds.",
            retry_after=retry_after,
        )


def _to_response(result: AuthResult) -> AuthResponse:
    return AuthResponse(token=result.token, login_id=result.login_id, name=result.name, role=result.role)


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    payload: RegisterRequest = Body(...),
    context: AuthContext = Depends(get_auth_context),
) -> AuthResponse:
    result = await context.service.register(payload.login_id, payload.name, payload.password)
    return _to_response(result)


@router.post("/staff/register", response_model=AuthResponse, status_code=201)
async def register_staff(
    payload: StaffRegisterRequest = Body(...),
    context: AuthContext = Depends(get_auth_context),
) -> AuthResponse:
    result = await context.service.register_staff(
        payload.login_id,
        payload.name,
        payload.password,
        payload.staff_registration_key,
    )
    return _to_response(result)


@router.post("/login", response_model=AuthResponse | TotpChallengeResponse)
async def login(
    request: Request,
    payload: LoginRequest = Body(...),
    context: AuthContext = Depends(get_auth_context),
) -> AuthResponse | TotpChallengeResponse:
    limiter = get_login_rate_limiter()
    rate_key = _client_key(request, prefix="login")
    _ensure_not_rate_limited(limiter, rate_key)
    try:
        outcome = await context.service.login(payload.login_id, payload.password)
    except InvalidCredentialsError:
        limiter.record_failure(rate_key)
        raise
    limiter.reset(rate_key)

    if isinstance(outcome, LoginChallenge):
        return TotpChallengeResponse(pending_token=outcome.pending_token, message=outcome.message)
    return _to_response(outcome.auth)


@router.post("/2fa/verify", response_model=AuthResponse)
async def verify_totp(
    request: Request,
    payload: TotpCodeRequest = Body(...),
    principal: AuthPrincipal = Depends(get_principal),
    context: AuthContext = Depends(get_auth_context),
) -> AuthResponse:
    limiter = get_totp_rate_limiter()
    rate_key = _client_key(request, prefix="totp_verify")
    _ensure_not_rate_limited(limiter, rate_key)
    try:
        result = await context.service.verify_totp(principal.user_id, payload.code)
    except InvalidTotpCodeError:
        limiter.record_failure(rate_key)
        raise
    limiter.reset(rate_key)
    return _to_response(result)


@router.post("/2fa/setup", response_model=TotpSetupResponse)
async def setup_totp(
    principal: AuthPrincipal = Depends(require_full_principal),
    context: AuthContext = Depends(get_auth_context),
) -> TotpSetupResponse:
    setup = await context.service.setup_totp(principal.user_id)
    return TotpSetupResponse(
        secret=setup.secret,
        otpauth_uri=setup.otpauth_uri,
        qr_svg_data_uri=_qr_svg_data_uri(setup.otpauth_uri),
        message=setup.message,
    )


@router.post("/2fa/confirm", response_model=AuthResponse)
async def confirm_totp_setup(
    request: Request,
    payload: TotpCodeRequest = Body(...),
    principal: AuthPrincipal = Depends(require_full_principal),
    context: AuthContext = Depends(get_auth_context),
) -> AuthResponse:
    limiter = get_totp_rate_limiter()
    rate_key = _client_key(request, prefix="totp_confirm")
    _ensure_not_rate_limited(limiter, rate_key)
    try:
        result = await context.service.confirm_totp_setup(principal.user_id, payload.code)
    except InvalidTotpCodeError:
        limiter.record_failure(rate_key)
        raise
    limiter.reset(rate_key)
    return _to_response(result)


@router.delete("/2fa", response_model=MessageResponse)
async def disable_totp(
    principal: AuthPrincipal = Depends(require_full_principal),
    context: AuthContext = Depends(get_auth_context),
) -> MessageResponse:
    message = await context.service.disable_totp(principal.user_id)
    return MessageResponse(message=message)


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    payload: ForgotPasswordRequest = Body(...),
    context: AuthContext = Depends(get_auth_context),
) -> MessageResponse:
    message = await context.service.forgot_password(payload.login_id)
    return MessageResponse(message=message)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest = Body(...),
    context: AuthContext = Depends(get_auth_context),
) -> MessageResponse:
    message = await context.service.reset_password(payload.token, payload.new_password)
    return MessageResponse(message=message)


@router.get("/me", response_model=AccountResponse)
async def get_current_account(
    principal: AuthPrincipal = Depends(require_full_principal),
    context: AuthContext = Depends(get_auth_context),
) -> AccountResponse:
    account = await context.service.get_account(principal.user_id)
    return AccountResponse(
        id=account.id,
        login_id=account.login_id,
        name=account.display_name,
        role=account.role.value,
        two_factor_enabled=account.two_factor_active,
        two_factor_pending=account.two_factor_pending,
    )


def _qr_svg_data_uri(payload: str) -> str:
    qr = segno.make(payload)
    buffer = BytesIO()
    qr.save(buffer, kind="svg", xmldecl=False, scale=6, border=2)
    raw = buffer.getvalue()
    return f"data:image/svg+xml;base64,{base64.b64encode(raw).decode('ascii')}"
