from __future__ import annotations

import base64

_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"
_SYMBOL_VALUES = {symbol: index for index, symbol in enumerate(_ALPHABET)}


def encode(data: bytes) -> str:
    """RFC 4648 Base32 without ``=`` padding.

    A trailing partial 5-bit group is left-shifted and zero-filled.
    """
    return base64.b32encode(data).decode("ascii").rstrip("=")


def decode(text: str) -> bytes:
    """Decode Base32 text, ignoring anything outside ``A-Z2-7``.

    Input is uppercased first, so lowercase secrets decode the same. The
    output holds ``len(cleaned) * 5 // 8`` bytes; leftover bits that do not
    complete a byte are dropped.
    """
    cleaned = [symbol for symbol in text.upper() if symbol in _SYMBOL_VALUES]
    output = bytearray()
    buffer = 0
    bits = 0
    for symbol in cleaned:
        buffer = ((buffer << 5) | _SYMBOL_VALUES[symbol]) & 0xFFFF
        bits += 5
        if bits >= 8:
            bits -= 8
            output.append((buffer >> bits) & 0xFF)
    return bytes(output)
