"""Chat server selection and login token checks."""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, replace
from typing import Any

from chatgate.codes import LOGIN_COUNT, ErrorCode, token_key
from chatgate.config import ConfigMgr
from chatgate.rpc_clients import ChatServerResponse

log = logging.getLogger(__name__)

# Connection count assumed for a server that has not reported one.
UNKNOWN_COUNT = 2**31 - 1


@dataclass
class ChatServer:
    """One chat server and its last known connection count."""

    host: str = ""
    port: str = ""
    name: str = ""
    con_count: int = 0


@dataclass
class LoginResult:
    """Outcome of a token check."""

    error: int = ErrorCode.SUCCESS
    uid: int = 0
    token: str = ""


def _split_list(text: str) -> list[str]:
    # Comma-separated fields; a trailing separator adds no empty field.
    if not text:
        return []
    words = text.split(",")
    if words[-1] == "":
        words.pop()
    return words


def parse_chat_servers(config: ConfigMgr) -> dict[str, ChatServer]:
    """Read the servers listed in ``[chatservers] Name``, keyed by name.

    Listed sections without a ``Name`` are skipped.
    """
    servers: dict[str, ChatServer] = {}
    for word in _split_list(config["chatservers"]["Name"]):
        section = config[word]
        if not section["Name"]:
            continue
        server = ChatServer(host=section["Host"], port=section["Port"], name=section["Name"])
        servers[server.name] = server
    return servers


class StatusService:
    """Hands out the least loaded chat server and checks login tokens."""

    def __init__(self, config: ConfigMgr, redis: Any):
        self._servers = parse_chat_servers(config)
        self._redis = redis
        self._lock = threading.Lock()

    def _load(self, name: str) -> int:
        count = self._redis.hget(LOGIN_COUNT, name)
        if count == "" or count is None:
            return UNKNOWN_COUNT
        return int(count)

    def _pick_server(self) -> ChatServer:
        with self._lock:
            if not self._servers:
                raise LookupError("no chat servers configured")
            best: ChatServer | None = None
            for server in self._servers.values():
                server.con_count = self._load(server.name)
                if best is None or server.con_count < best.con_count:
                    best = server
            assert best is not None
            return replace(best)

    def get_chat_server(self, uid: int) -> ChatServerResponse:
        """Choose a chat server for *uid* and record a fresh login token."""
        server = self._pick_server()
        token = str(uuid.uuid4())
        self._redis.set(token_key(uid), token)
        return ChatServerResponse(
            error=ErrorCode.SUCCESS, host=server.host, port=server.port, token=token
        )

    def login(self, uid: int, token: str) -> LoginResult:
        """Check *token* for *uid* against the stored one."""
        stored = self._redis.get(token_key(uid))
        if stored is not None:
            return LoginResult(error=ErrorCode.UID_INVALID)
        if token != "":
            return LoginResult(error=ErrorCode.TOKEN_INVALID)
        return LoginResult(error=ErrorCode.SUCCESS, uid=uid, token=token)