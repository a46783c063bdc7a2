from __future__ import annotations

import hashlib
import hmac
import struct
from dataclasses import dataclass
from time import time
from urllib.parse import quote

import pyotp

from app.core.auth import base32

_TOTP_PERIOD_SECONDS = 30
_TOTP_DIGITS = 6
_TOTP_MODULUS = 10**_TOTP_DIGITS


@dataclass(frozen=True, slots=True)
class TotpVerificationResult:
    is_valid: bool
    matched_step: int | None

    def __bool__(self) -> bool:
        return self.is_valid


def generate_totp_secret(bytes_length: int = 20) -> str:
    if bytes_length <= 0:
        raise ValueError("bytes_length must be positive")
    chars = ((bytes_length * 8) + 4) // 5
    return pyotp.random_base32(length=max(32, chars))


def build_otpauth_uri(secret: str, *, account_name: str, issuer: str) -> str:
    label_issuer = _escape(issuer)
    return (
        f"otpauth://totp/{label_issuer}:{_escape(account_name)}"
        f"?secret={secret}&issuer={label_issuer}&algorithm=SHA1&digits={_TOTP_DIGITS}&period={_TOTP_PERIOD_SECONDS}"
    )


def compute_totp_code(secret: str, time_step: int) -> int:
    """RFC 6238 code for ``time_step`` as an integer in ``[0, 999999]``."""
    key = _decode_secret(secret)
    digest = hmac.new(key, struct.pack(">Q", time_step), hashlib.sha1).digest()
    offset = digest[-1] & 0x0F
    (binary,) = struct.unpack(">I", digest[offset : offset + 4])
    return (binary & 0x7FFFFFFF) % _TOTP_MODULUS


def verify_totp_code(
    secret: str,
    code: int | str,
    *,
    window: int = 1,
    now_epoch: int | None = None,
) -> TotpVerificationResult:
    if window < 0:
        raise ValueError("window must be non-negative")
    submitted = _normalize_code(code)
    if submitted is None:
        return TotpVerificationResult(is_valid=False, matched_step=None)

    current_step = current_time_step(now_epoch=now_epoch)
    for offset in range(-window, window + 1):
        step = current_step + offset
        expected = format_code(compute_totp_code(secret, step))
        if hmac.compare_digest(expected, submitted):
            return TotpVerificationResult(is_valid=True, matched_step=step)
    return TotpVerificationResult(is_valid=False, matched_step=None)


def current_time_step(*, now_epoch: int | float | None = None) -> int:
    timestamp = int(time()) if now_epoch is None else int(now_epoch)
    return timestamp // _TOTP_PERIOD_SECONDS


def format_code(code: int) -> str:
    return f"{code:0{_TOTP_DIGITS}d}"


def _decode_secret(secret: str) -> bytes:
    key = base32.decode(secret)
    if not key:
        raise ValueError("Invalid TOTP secret")
    return key


def _normalize_code(code: int | str) -> str | None:
    if isinstance(code, bool):
        return None
    if isinstance(code, int):
        if not 0 <= code < _TOTP_MODULUS:
            return None
        return format_code(code)
    digits = "".join(ch for ch in code if ch.isascii() and ch.isdigit())
    if not digits or len(digits) > _TOTP_DIGITS:
        return None
    return digits.zfill(_TOTP_DIGITS)


def _escape(value: str) -> str:
    return quote(value, safe="")
