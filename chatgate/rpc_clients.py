"""Clients for the verification and status services, over pooled stubs."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from chatgate.codes import ErrorCode
from chatgate.pool import ConnectionPool, PoolClosedError

log = logging.getLogger(__name__)


@dataclass
class VerifyResponse:
    """Reply to a request for an e-mail verification code."""

    error: int = ErrorCode.SUCCESS
    email: str = ""


@dataclass
class ChatServerResponse:
    """Reply naming the chat server a user should connect to."""

    error: int = ErrorCode.SUCCESS
    host: str = ""
    port: str = ""
    token: str = ""


class _VerifyStub(Protocol):
    def get_verify_code(self, email: str) -> VerifyResponse: ...


class _StatusStub(Protocol):
    def get_chat_server(self, uid: int) -> ChatServerResponse: ...


class VerifyClient:
    """Asks the verification service to send a code to an address.

    Each call borrows a stub from the pool and gives it back afterwards.
    Any failure of the call is reported as ``RPC_FAILED`` in the reply.
    """

    def __init__(self, pool: ConnectionPool[Any]):
        self._pool = pool

    def get_verify_code(self, email: str) -> VerifyResponse:
        try:
            with self._pool.connection() as stub:
                return stub.get_verify_code(email)
        except PoolClosedError:
            log.info("verify request for %s skipped: pool is closed", email)
        except Exception as exc:  # any transport or remote failure
            log.info("verify request for %s failed: %s", email, exc)
        return VerifyResponse(error=ErrorCode.RPC_FAILED)


class StatusClient:
    """Asks the status service which chat server a user should use."""

    def __init__(self, pool: ConnectionPool[Any]):
        self._pool = pool

    def get_chat_server(self, uid: int) -> ChatServerResponse:
        try:
            with self._pool.connection() as stub:
                return stub.get_chat_server(uid)
        except PoolClosedError:
            log.info("chat server request for uid %s skipped: pool is closed", uid)
        except Exception as exc:  # any transport or remote failure
            log.info("chat server request for uid %s failed: %s", uid, exc)
        return ChatServerResponse(error=ErrorCode.RPC_FAILED)