from __future__ import annotations

from pydantic import Field

from app.modules.shared.schemas import ApiModel

_LOGIN_ID_PATTERN = r"^[0-9]{5,10}$"


class RegisterRequest(ApiModel):
    login_id: str = Field(pattern=_LOGIN_ID_PATTERN)
    name: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=1, max_length=72)


class StaffRegisterRequest(ApiModel):
    login_id: str = Field(pattern=_LOGIN_ID_PATTERN)
    name: str = Field(min_length=2, max_length=100)
    password: str = Field(min_length=1, max_length=72)
    staff_registration_key: str = Field(min_length=1)


class LoginRequest(ApiModel):
    login_id: str = Field(min_length=1)
    password: str = Field(min_length=1)


class TotpCodeRequest(ApiModel):
    code: int = Field(ge=0, le=999_999)


class ForgotPasswordRequest(ApiModel):
    login_id: str = Field(min_length=1)


class ResetPasswordRequest(ApiModel):
    token: str = Field(min_length=1)
    new_password: str = Field(min_length=1, max_length=72)


class AuthResponse(ApiModel):
    token: str
    login_id: str
    name: str
    role: str


class TotpChallengeResponse(ApiModel):
    pending_token: str
    message: str


class TotpSetupResponse(ApiModel):
    secret: str
    otpauth_uri: str
    qr_svg_data_uri: str
    message: str


class AccountResponse(ApiModel):
    id: str
    login_id: str
    name: str
    role: str
    two_factor_enabled: bool
    two_factor_pending: bool
