"""Routing of gate requests to handlers and the account handlers themselves."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any, Protocol

from chatgate.codes import ErrorCode, code_key
from chatgate.rpc_clients import ChatServerResponse, VerifyResponse

log = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "text/json"


@dataclass
class UserInfo:
    """A registered user as stored in the account database."""

    name: str = ""
    pwd: str = ""
    uid: int = 0
    email: str = ""


@dataclass
class Request:
    """What a handler sees of an incoming request."""

    body: str = ""
    params: dict[str, str] = field(default_factory=dict)


@dataclass
class Response:
    """What a handler builds up: extra headers and the body text."""

    body: str = ""
    headers: dict[str, str] = field(default_factory=dict)

    def write(self, text: str) -> None:
        """Append *text* to the body."""
        self.body += text


Handler = Callable[[Request, Response], None]


class UserStore(Protocol):
    """The account database operations the handlers rely on."""

    def reg_user(self, name: str, email: str, pwd: str) -> int: ...

    def check_email(self, name: str, email: str) -> bool: ...

    def update_pwd(self, name: str, pwd: str) -> bool: ...

    def check_pwd(self, name: str, pwd: str) -> UserInfo | None: ...


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any | None: ...

    def exists(self, key: str) -> bool: ...


class VerifyService(Protocol):
    def get_verify_code(self, email: str) -> VerifyResponse: ...


class StatusLookup(Protocol):
    def get_chat_server(self, uid: int) -> ChatServerResponse: ...


def _styled(root: Mapping[str, Any]) -> str:
    # Keys sorted, three-space indent, " : " between key and value.
    return json.dumps(
        root, indent=3, sort_keys=True, separators=(",", " : "), ensure_ascii=False
    ) + "\n"


def _as_string(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (str, int, float)):
        return str(value)
    return ""


class _BadJson(Exception):
    pass


def _parse_body(body: str) -> dict[str, Any]:
    try:
        root = json.loads(body)
    except ValueError as exc:
        raise _BadJson from exc
    if not isinstance(root, dict):
        raise _BadJson
    return root


class LogicSystem:
    """Maps request paths to handlers for GET and POST."""

    def __init__(
        self,
        redis: KeyValueStore,
        users: UserStore,
        verify_client: VerifyService,
        status_client: StatusLookup,
    ):
        self._redis = redis
        self._users = users
        self._verify = verify_client
        self._status = status_client
        self._get_handlers: dict[str, Handler] = {}
        self._post_handlers: dict[str, Handler] = {}

        self.reg_get("/get_test", self._get_test)
        self.reg_post("/get_verifycode", self._json_handler(self._get_verify_code))
        self.reg_post("/user_register", self._json_handler(self._user_register))
        self.reg_post("/reset_pwd", self._json_handler(self._reset_pwd))
        self.reg_post("/user_login", self._json_handler(self._user_login))

    def reg_get(self, url: str, handler: Handler) -> None:
        """Register a GET handler; the first registration for a path wins."""
        self._get_handlers.setdefault(url, handler)

    def reg_post(self, url: str, handler: Handler) -> None:
        """Register a POST handler; the first registration for a path wins."""
        self._post_handlers.setdefault(url, handler)

    @staticmethod
    def _dispatch(
        handlers: Mapping[str, Handler], path: str, request: Request
    ) -> Response | None:
        handler = handlers.get(path)
        if handler is None:
            return None
        response = Response()
        handler(request, response)
        return response

    def handle_get(self, path: str, request: Request) -> Response | None:
        """Run the GET handler for *path*; None if there is none."""
        return self._dispatch(self._get_handlers, path, request)

    def handle_post(self, path: str, request: Request) -> Response | None:
        """Run the POST handler for *path*; None if there is none."""
        return self._dispatch(self._post_handlers, path, request)

    # -- handlers -----------------------------------------------------------

    @staticmethod
    def _get_test(request: Request, response: Response) -> None:
        response.write("receive get_test req\n")
        for i, (key, value) in enumerate(sorted(request.params.items()), start=1):
            response.write(f"param{i} key is {key},  value is {value}\n")

    @staticmethod
    def _json_handler(
        body_handler: Callable[[dict[str, Any]], dict[str, Any]]
    ) -> Handler:
        def handler(request: Request, response: Response) -> None:
            log.info("receive body is %s", request.body)
            response.headers["Content-Type"] = JSON_CONTENT_TYPE
            try:
                src = _parse_body(request.body)
            except _BadJson:
                log.info("Failed to parse JSON data!")
                root: dict[str, Any] = {"error": int(ErrorCode.ERROR_JSON)}
            else:
                root = body_handler(src)
            response.write(_styled(root))

        return handler

    @staticmethod
    def _error(code: ErrorCode) -> dict[str, Any]:
        return {"error": int(code)}

    def _check_code(self, src: dict[str, Any]) -> ErrorCode | None:
        stored = self._redis.get(code_key(_as_string(src.get("email"))))
        if stored is None:
            log.info("get verify code expired")
            return ErrorCode.VERIFY_EXPIRED
        if _as_string(stored) != _as_string(src.get("varifycode")):
            log.info("verify code error")
            return ErrorCode.VERIFY_CODE_ERR
        return None

    def _get_verify_code(self, src: dict[str, Any]) -> dict[str, Any]:
        email = _as_string(src.get("email"))
        self._verify.get_verify_code(email)
        log.info("email is %s", email)
        return {"error": int(ErrorCode.SUCCESS), "email": src.get("email")}

    def _user_register(self, src: dict[str, Any]) -> dict[str, Any]:
        email = _as_string(src.get("email"))
        name = _as_string(src.get("user"))
        pwd = _as_string(src.get("passwd"))
        confirm = _as_string(src.get("confirm"))
        if pwd != confirm:
            log.info("password err")
            return self._error(ErrorCode.PASSWD_ERR)
        failure = self._check_code(src)
        if failure is not None:
            return self._error(failure)
        if self._redis.exists(name):
            log.info("user exist")
            return self._error(ErrorCode.USER_EXIST)
        uid = self._users.reg_user(name, email, pwd)
        if uid in (0, -1):
            log.info("user or email exist")
            return self._error(ErrorCode.USER_EXIST)
        return {
            "error": 0,
            "uid": uid,
            "email": src.get("email"),
            "user": name,
            "passwd": pwd,
            "confirm": confirm,
            "varifycode": _as_string(src.get("varifycode")),
        }

    def _reset_pwd(self, src: dict[str, Any]) -> dict[str, Any]:
        email = _as_string(src.get("email"))
        name = _as_string(src.get("user"))
        pwd = _as_string(src.get("passwd"))
        failure = self._check_code(src)
        if failure is not None:
            return self._error(failure)
        if not self._users.check_email(name, email):
            log.info("user email not match")
            return self._error(ErrorCode.EMAIL_NOT_MATCH)
        if not self._users.update_pwd(name, pwd):
            log.info("update pwd failed")
            return self._error(ErrorCode.PASSWD_UP_FAILED)
        log.info("succeed to update password for %s", name)
        return {
            "error": 0,
            "email": email,
            "user": name,
            "passwd": pwd,
            "varifycode": _as_string(src.get("varifycode")),
        }

    def _user_login(self, src: dict[str, Any]) -> dict[str, Any]:
        name = _as_string(src.get("email"))
        pwd = _as_string(src.get("passwd"))
        user = self._users.check_pwd(name, pwd)
        if user is None:
            log.info("email pwd not match")
            return self._error(ErrorCode.PASSWD_INVALID)
        reply = self._status.get_chat_server(user.uid)
        if reply.error:
            log.info("grpc get chat server failed, error is %s", reply.error)
            return self._error(ErrorCode.RPC_FAILED)
        log.info("succeed to load userinfo uid is %s", user.uid)
        return {
            "error": 0,
            "user": name,
            "uid": user.uid,
            "token": reply.token,
            "host": reply.host,
            "port": reply.port,
        }