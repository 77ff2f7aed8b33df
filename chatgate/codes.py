"""Error codes and key prefixes shared by the gate and status services."""

from __future__ import annotations

from enum import IntEnum

CODE_PREFIX = "code_"
USER_IP_PREFIX = "uip_"
USER_TOKEN_PREFIX = "utoken_"
IP_COUNT_PREFIX = "ipcount_"
USER_BASE_INFO = "ubaseinfo_"
LOGIN_COUNT = "logincount"
LOCK_COUNT = "lockcount"


class ErrorCode(IntEnum):
    """Result codes carried in the ``error`` field of every reply."""

    SUCCESS = 0
    ERROR_JSON = 1001
    RPC_FAILED = 1002
    VERIFY_EXPIRED = 1003
    VERIFY_CODE_ERR = 1004
    USER_EXIST = 1005
    PASSWD_ERR = 1006
    EMAIL_NOT_MATCH = 1007
    PASSWD_UP_FAILED = 1008
    PASSWD_INVALID = 1009
    TOKEN_INVALID = 1010
    UID_INVALID = 1011


def code_key(email: str) -> str:
    """Return the store key under which the verification code for *email* lives."""
    return f"{CODE_PREFIX}{email}"


def token_key(uid: int) -> str:
    """Return the store key under which the login token for *uid* lives."""
    return f"{USER_TOKEN_PREFIX}{uid}"