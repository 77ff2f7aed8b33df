import json

import pytest

from chatgate.codes import ErrorCode, code_key
from chatgate.logic import LogicSystem, Request, Response, UserInfo
from chatgate.rpc_clients import ChatServerResponse, VerifyResponse

EMAIL = "alice@example.com"


class FakeRedis:
    def __init__(self, data=None):
        self.data = dict(data or {})

    def get(self, key):
        return self.data.get(key)

    def exists(self, key):
        return key in self.data


class FakeUsers:
    def __init__(self, uid=7, email_ok=True, update_ok=True, login_user=None):
        self.uid = uid
        self.email_ok = email_ok
        self.update_ok = update_ok
        self.login_user = login_user
        self.registered = []
        self.updated = []

    def reg_user(self, name, email, pwd):
        self.registered.append((name, email, pwd))
        return self.uid

    def check_email(self, name, email):
        return self.email_ok

    def update_pwd(self, name, pwd):
        self.updated.append((name, pwd))
        return self.update_ok

    def check_pwd(self, name, pwd):
        return self.login_user


class FakeVerify:
    def __init__(self):
        self.emails = []

    def get_verify_code(self, email):
        self.emails.append(email)
        return VerifyResponse(email=email)


class FakeStatus:
    def __init__(self, reply=None):
        self.reply = reply or ChatServerResponse(host="127.0.0.1", port="8090", token="token")
        self.uids = []

    def get_chat_server(self, uid):
        self.uids.append(uid)
        return self.reply


def make_logic(redis=None, users=None, verify=None, status=None):
    return LogicSystem(
        redis if redis is not None else FakeRedis(),
        users if users is not None else FakeUsers(),
        verify if verify is not None else FakeVerify(),
        status if status is not None else FakeStatus(),
    )


def post(logic, path, payload):
    body = payload if isinstance(payload, str) else json.dumps(payload)
    response = logic.handle_post(path, Request(body=body))
    assert response is not None
    return response, json.loads(response.body)


def test_unknown_paths_return_none():
    logic = make_logic()
    assert logic.handle_get("/missing", Request()) is None
    assert logic.handle_post("/missing", Request()) is None


def test_get_test_lists_params_in_key_order():
    logic = make_logic()
    response = logic.handle_get("/get_test", Request(params={"b": "2", "a": "1"}))
    assert response.body == (
        "receive get_test req\n"
        "param1 key is a,  value is 1\n"
        "param2 key is b,  value is 2\n"
    )


def test_first_registration_wins():
    logic = make_logic()

    def other(request, response):
        response.write("other")

    logic.reg_get("/get_test", other)
    response = logic.handle_get("/get_test", Request())
    assert response.body.startswith("receive get_test req")


def test_custom_post_handler_runs():
    logic = make_logic()

    def echo(request, response):
        response.write(request.body.upper())

    logic.reg_post("/echo", echo)
    assert logic.handle_post("/echo", Request(body="hi")).body == "HI"


@pytest.mark.parametrize("path", ["/get_verifycode", "/user_register", "/reset_pwd", "/user_login"])
@pytest.mark.parametrize("body", ["not json", "", "[1, 2]"])
def test_bad_json_reports_error_json(path, body):
    response, root = post(make_logic(), path, body)
    assert root == {"error": ErrorCode.ERROR_JSON}
    assert response.headers["Content-Type"] == "text/json"


def test_styled_output_format():
    response, _ = post(make_logic(), "/get_verifycode", {"email": EMAIL})
    assert response.body == '{\n   "email" : "alice@example.com",\n   "error" : 0\n}\n'


def test_get_verifycode_calls_verify_service():
    verify = FakeVerify()
    _, root = post(make_logic(verify=verify), "/get_verifycode", {"email": EMAIL})
    assert verify.emails == [EMAIL]
    assert root["error"] == ErrorCode.SUCCESS


def register_payload(**overrides):
    payload = {
        "email": EMAIL,
        "user": "alice",
        "passwd": "password",
        "confirm": "password",
        "varifycode": "1234",
    }
    payload.update(overrides)
    return payload


def test_register_password_mismatch():
    _, root = post(make_logic(), "/user_register", register_payload(confirm="secret"))
    assert root == {"error": ErrorCode.PASSWD_ERR}


def test_register_code_expired():
    _, root = post(make_logic(), "/user_register", register_payload())
    assert root == {"error": ErrorCode.VERIFY_EXPIRED}


def test_register_code_wrong():
    redis = FakeRedis({code_key(EMAIL): "9999"})
    _, root = post(make_logic(redis=redis), "/user_register", register_payload())
    assert root == {"error": ErrorCode.VERIFY_CODE_ERR}


def test_register_user_in_redis():
    redis = FakeRedis({code_key(EMAIL): "1234", "alice": "x"})
    _, root = post(make_logic(redis=redis), "/user_register", register_payload())
    assert root == {"error": ErrorCode.USER_EXIST}


@pytest.mark.parametrize("uid", [0, -1])
def test_register_rejected_by_database(uid):
    redis = FakeRedis({code_key(EMAIL): "1234"})
    _, root = post(make_logic(redis=redis, users=FakeUsers(uid=uid)), "/user_register", register_payload())
    assert root == {"error": ErrorCode.USER_EXIST}


def test_register_success():
    redis = FakeRedis({code_key(EMAIL): "1234"})
    users = FakeUsers(uid=42)
    _, root = post(make_logic(redis=redis, users=users), "/user_register", register_payload())
    assert users.registered == [("alice", EMAIL, "password")]
    assert root == {
        "error": 0,
        "uid": 42,
        "email": EMAIL,
        "user": "alice",
        "passwd": "password",
        "confirm": "password",
        "varifycode": "1234",
    }


def reset_payload():
    return {"email": EMAIL, "user": "alice", "passwd": "password", "varifycode": "1234"}


def test_reset_email_mismatch():
    redis = FakeRedis({code_key(EMAIL): "1234"})
    users = FakeUsers(email_ok=False)
    _, root = post(make_logic(redis=redis, users=users), "/reset_pwd", reset_payload())
    assert root == {"error": ErrorCode.EMAIL_NOT_MATCH}
    assert users.updated == []


def test_reset_update_failed():
    redis = FakeRedis({code_key(EMAIL): "1234"})
    _, root = post(make_logic(redis=redis, users=FakeUsers(update_ok=False)), "/reset_pwd", reset_payload())
    assert root == {"error": ErrorCode.PASSWD_UP_FAILED}


def test_reset_success():
    redis = FakeRedis({code_key(EMAIL): "1234"})
    users = FakeUsers()
    _, root = post(make_logic(redis=redis, users=users), "/reset_pwd", reset_payload())
    assert users.updated == [("alice", "password")]
    assert root == dict(reset_payload(), error=0)


def test_reset_code_expired():
    _, root = post(make_logic(), "/reset_pwd", reset_payload())
    assert root == {"error": ErrorCode.VERIFY_EXPIRED}


def test_login_bad_password():
    _, root = post(make_logic(users=FakeUsers(login_user=None)), "/user_login", {"email": EMAIL, "passwd": "password"})
    assert root == {"error": ErrorCode.PASSWD_INVALID}


def test_login_status_failure():
    users = FakeUsers(login_user=UserInfo(name="alice", uid=5, email=EMAIL))
    status = FakeStatus(ChatServerResponse(error=ErrorCode.RPC_FAILED))
    _, root = post(make_logic(users=users, status=status), "/user_login", {"email": EMAIL, "passwd": "password"})
    assert root == {"error": ErrorCode.RPC_FAILED}


def test_login_success():
    users = FakeUsers(login_user=UserInfo(name="alice", uid=5, email=EMAIL))
    status = FakeStatus()
    _, root = post(make_logic(users=users, status=status), "/user_login", {"email": EMAIL, "passwd": "password"})
    assert status.uids == [5]
    assert root == {
        "error": 0,
        "user": EMAIL,
        "uid": 5,
        "token": "token",
        "host": "127.0.0.1",
        "port": "8090",
    }


def test_response_write_appends():
    response = Response()
    response.write("a")
    response.write("b")
    assert response.body == "ab"