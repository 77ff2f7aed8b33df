"""Form-style URL encoding and request-target splitting."""

from __future__ import annotations

import string

_UNRESERVED = frozenset((string.ascii_letters + string.digits + "-_.~").encode("ascii"))
_HEX_DIGITS = frozenset(string.hexdigits)


def url_encode(text: str) -> str:
    """Encode *text* as UTF-8, keeping unreserved bytes, space as ``+``, others ``%XX``."""
    parts = []
    for byte in text.encode("utf-8"):
        if byte in _UNRESERVED:
            parts.append(chr(byte))
        elif byte == 0x20:
            parts.append("+")
        else:
            parts.append(f"%{byte:02X}")
    return "".join(parts)


def url_decode(text: str) -> str:
    """Undo :func:`url_encode`: ``+`` becomes space and ``%XX`` a byte.

    Raises ValueError on a truncated or non-hexadecimal escape.
    """
    out = bytearray()
    chars = iter(text)
    for ch in chars:
        if ch == "+":
            out.append(0x20)
        elif ch == "%":
            pair = "".join(next(chars, "") for _ in range(2))
            if len(pair) != 2 or not set(pair) <= _HEX_DIGITS:
                raise ValueError(f"invalid percent escape: %{pair}")
            out.append(int(pair, 16))
        else:
            out.extend(ch.encode("utf-8"))
    return out.decode("utf-8", errors="replace")


def split_target(target: str) -> tuple[str, dict[str, str]]:
    """Split a request target into its path and decoded query parameters.

    Pairs without ``=`` are ignored, later duplicates win, and the
    parameters come back ordered by key.
    """
    path, sep, query = target.partition("?")
    params: dict[str, str] = {}
    if sep:
        for pair in query.split("&"):
            key, eq, value = pair.partition("=")
            if eq:
                params[url_decode(key)] = url_decode(value)
    return path, dict(sorted(params.items()))