"""HTTP front end of the gate: request handling, the server and its command."""

from __future__ import annotations

import argparse
import itertools
import logging
import re
import signal
import sys
import threading
from dataclasses import dataclass, field
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any

from chatgate.config import load_config
from chatgate.logic import LogicSystem, Request, UserInfo
from chatgate.pool import ConnectionPool
from chatgate.redis_store import create_redis_store
from chatgate.rpc_clients import StatusClient, VerifyClient, VerifyResponse
from chatgate.status_service import StatusService
from chatgate.urlcodec import split_target

log = logging.getLogger(__name__)

# Seconds a connection may stay open before it is dropped.
DEADLINE_SECONDS = 60
SERVER_NAME = "GateServer"
NOT_FOUND_BODY = b"url not found\r\n"
CLIENT_POOL_SIZE = 5


@dataclass
class HttpResponse:
    """Status, headers and encoded body of a reply."""

    status: HTTPStatus
    headers: dict[str, str] = field(default_factory=dict)
    body: bytes = b""


def handle_request(
    logic: LogicSystem, method: str, target: str, body: str = ""
) -> HttpResponse | None:
    """Route one request through *logic* and build the reply.

    GET targets are split into path and query parameters; POST targets are
    matched verbatim. Other methods get no reply (None). A malformed percent
    escape in a GET query raises ValueError.
    """
    method = method.upper()
    headers = {"Access-Control-Allow-Origin": "*"}
    if method == "GET":
        log.info("%s", target)
        path, params = split_target(target)
        result = logic.handle_get(path, Request(body=body, params=params))
    elif method == "POST":
        result = logic.handle_post(target, Request(body=body))
    else:
        return None

    if result is None:
        headers["Content-Type"] = "text/plain"
        return HttpResponse(HTTPStatus.NOT_FOUND, headers, NOT_FOUND_BODY)
    headers.update(result.headers)
    headers["Server"] = SERVER_NAME
    return HttpResponse(HTTPStatus.OK, headers, result.body.encode("utf-8"))


class _GateHTTPServer(ThreadingHTTPServer):
    daemon_threads = True
    allow_reuse_address = True
    logic: LogicSystem


class _RequestHandler(BaseHTTPRequestHandler):
    timeout = DEADLINE_SECONDS
    server: _GateHTTPServer

    def do_GET(self) -> None:
        self._serve("GET")

    def do_POST(self) -> None:
        self._serve("POST")

    def _read_body(self) -> str:
        try:
            length = int(self.headers.get("Content-Length") or 0)
        except ValueError:
            length = 0
        if length <= 0:
            return ""
        return self.rfile.read(length).decode("utf-8", errors="replace")

    def _serve(self, method: str) -> None:
        self.close_connection = True
        try:
            result = handle_request(self.server.logic, method, self.path, self._read_body())
        except Exception as exc:  # a broken request only ends its connection
            log.info("exception is %s", exc)
            return
        if result is None:
            return
        if self.request_version.startswith("HTTP/"):
            self.protocol_version = self.request_version
        self.send_response_only(int(result.status))
        self.log_request(int(result.status))
        for name, value in result.headers.items():
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(result.body)))
        self.send_header("Connection", "close")
        self.end_headers()
        self.wfile.write(result.body)

    def log_message(self, format: str, *args: Any) -> None:
        log.info("%s - %s", self.address_string(), format % args)


class GateServer:
    """Threaded HTTP server answering every request through a LogicSystem."""

    def __init__(self, logic: LogicSystem, host: str = "0.0.0.0", port: int = 0):
        self._httpd = _GateHTTPServer((host, port), _RequestHandler)
        self._httpd.logic = logic
        self._serving = threading.Event()
        self._closed = False

    @property
    def address(self) -> tuple[str, int]:
        """The host and port actually bound."""
        host, port = self._httpd.server_address[:2]
        return str(host), int(port)

    def serve_forever(self) -> None:
        """Accept and answer connections until :meth:`shutdown` is called."""
        self._serving.set()
        try:
            self._httpd.serve_forever()
        finally:
            self._serving.clear()

    def shutdown(self) -> None:
        """Stop serving and release the listening socket."""
        if self._closed:
            return
        self._closed = True
        if self._serving.is_set():
            self._httpd.shutdown()
        self._httpd.server_close()

    def __enter__(self) -> GateServer:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.shutdown()


def _atoi(text: str) -> int:
    match = re.match(r"\s*([+-]?\d+)", text)
    return int(match.group(1)) if match else 0


class _MemoryUserStore:
    """Accounts held in process memory."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._users: dict[str, UserInfo] = {}
        self._uids = itertools.count(1)

    def reg_user(self, name: str, email: str, pwd: str) -> int:
        with self._lock:
            if name in self._users or any(u.email == email for u in self._users.values()):
                return -1
            user = UserInfo(name=name, pwd=pwd, uid=next(self._uids), email=email)
            self._users[name] = user
            return user.uid

    def check_email(self, name: str, email: str) -> bool:
        with self._lock:
            user = self._users.get(name)
            return user is not None and user.email == email

    def update_pwd(self, name: str, pwd: str) -> bool:
        with self._lock:
            user = self._users.get(name)
            if user is None:
                return False
            user.pwd = pwd
            return True

    def check_pwd(self, name: str, pwd: str) -> UserInfo | None:
        with self._lock:
            for user in self._users.values():
                if name in (user.name, user.email) and user.pwd == pwd:
                    return UserInfo(user.name, user.pwd, user.uid, user.email)
            return None


class _UnreachableVerifyStub:
    """Stands in for the verification service when no transport is available."""

    def __init__(self, host: str, port: str):
        self._target = f"{host}:{port}"

    def get_verify_code(self, email: str) -> VerifyResponse:
        raise ConnectionError(f"verification service at {self._target} is unreachable")


def _stop_on_signal(signum: int, frame: object) -> None:
    raise KeyboardInterrupt


def main(argv: list[str] | None = None) -> int:
    """Run the gate server until interrupted; return the exit status."""
    parser = argparse.ArgumentParser(prog="chatgate", description="Run the gate HTTP server.")
    parser.add_argument("--config", default=None, help="path of the INI configuration file")
    parser.add_argument("--host", default="0.0.0.0", help="address to listen on")
    args = parser.parse_args(argv)

    redis_store = None
    try:
        config = load_config(args.config)
        redis_cfg = config["Redis"]
        redis_store = create_redis_store(
            redis_cfg["Host"], _atoi(redis_cfg["Port"]), redis_cfg["PassWd"] or None
        )
        status_service = StatusService(config, redis_store)
        status_client = StatusClient(ConnectionPool([status_service] * CLIENT_POOL_SIZE))
        verify_cfg = config["VarifyServer"]
        verify_client = VerifyClient(
            ConnectionPool(
                [_UnreachableVerifyStub(verify_cfg["Host"], verify_cfg["Port"])]
                * CLIENT_POOL_SIZE
            )
        )
        logic = LogicSystem(redis_store, _MemoryUserStore(), verify_client, status_client)
        server = GateServer(logic, args.host, _atoi(config["GateServer"]["Port"]))
        if threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, _stop_on_signal)
        log.info("gate server listening on %s:%s", *server.address)
        try:
            server.serve_forever()
        except KeyboardInterrupt:
            pass
        finally:
            server.shutdown()
        return 0
    except Exception as exc:
        print(f"Exception: {exc}", file=sys.stderr)
        return 1
    finally:
        if redis_store is not None:
            redis_store.close()


if __name__ == "__main__":
    sys.exit(main())