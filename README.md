# chatgate

`chatgate` is the HTTP front door of a chat service. Clients send it short
HTTP requests carrying JSON. It checks e-mail verification codes held in
Redis, registers users, resets passwords, checks logins, and picks the chat
server a freshly logged-in user should connect to.

## Installing

```
pip install .
```

For the tests:

```
pip install ".[test]"
pytest
```

## Running the server

```
chatgate [--config PATH] [--host ADDRESS]
```

- `--config`: the INI file to read. Without it, the file is
  `<current directory>/../src/config.ini` (see
  `chatgate.config.default_config_path`).
- `--host`: the address to listen on. The default is `0.0.0.0`.

The server stops on SIGINT or SIGTERM. It returns exit status 0 after a clean
stop. It returns 1 if start-up fails, and prints the error on standard error.

A configuration looks like this:

```ini
[GateServer]
Port = 8080

[Redis]
Host = 127.0.0.1
Port = 6379
PassWd = password

[VarifyServer]
Host = 127.0.0.1
Port = 50051

[chatservers]
Name = chat1,chat2

[chat1]
Name = chat1
Host = 127.0.0.1
Port = 8090

[chat2]
Name = chat2
Host = 127.0.0.1
Port = 8091
```

A missing section or key reads as an empty string, not as an error. Keys keep
their case. Values are read verbatim, with no interpolation. A duplicate
section or key makes loading fail.

`[chatservers] Name` is a comma-separated list of section names. Each listed
section that has a `Name` describes one chat server.

## HTTP interface

The server answers only GET and POST. Every response closes the connection
and carries `Access-Control-Allow-Origin: *`. Answered requests also carry
`Server: GateServer`. An unknown path gets `404` with the body
`url not found`. Connections are dropped after 60 seconds.

| Method | Path              | Input                                              |
|--------|-------------------|----------------------------------------------------|
| GET    | `/get_test`       | query parameters are echoed back, sorted by key    |
| POST   | `/get_verifycode` | `email`                                            |
| POST   | `/user_register`  | `email`, `user`, `passwd`, `confirm`, `varifycode` |
| POST   | `/reset_pwd`      | `email`, `user`, `passwd`, `varifycode`            |
| POST   | `/user_login`     | `email` (user name or e-mail), `passwd`            |

POST replies are JSON objects with `Content-Type: text/json`. Each has an
`error` field, and `0` means success. The other values are listed in
`chatgate.codes.ErrorCode`:

| Code | Name               | Meaning                                  |
|------|--------------------|------------------------------------------|
| 1001 | `ERROR_JSON`       | body is not a JSON object                |
| 1002 | `RPC_FAILED`       | a remote call failed                     |
| 1003 | `VERIFY_EXPIRED`   | no verification code stored              |
| 1004 | `VERIFY_CODE_ERR`  | verification code is wrong               |
| 1005 | `USER_EXIST`       | user or e-mail already registered        |
| 1006 | `PASSWD_ERR`       | password and confirmation differ         |
| 1007 | `EMAIL_NOT_MATCH`  | e-mail does not belong to the user       |
| 1008 | `PASSWD_UP_FAILED` | password update failed                   |
| 1009 | `PASSWD_INVALID`   | user name or password is wrong           |
| 1010 | `TOKEN_INVALID`    | token is invalid                         |
| 1011 | `UID_INVALID`      | uid is invalid                           |

Registration and password reset compare `varifycode` with the value stored
in Redis under `chatgate.codes.code_key(email)`.

A successful login returns `user`, `uid`, `token`, and the `host` and `port`
of the chosen chat server. The chosen server is the one with the lowest count
in the Redis hash `logincount`. A server with no count there counts as fully
loaded. The token is a fresh UUID stored under
`chatgate.codes.token_key(uid)`. If no chat servers are configured, login
answers `1002`.

Example:

```
curl -X POST http://localhost:8080/user_login \
     -d '{"email": "alice@example.com", "passwd": "password"}'
```

## Using the pieces from Python

- `chatgate.urlcodec` has `url_encode`, `url_decode` and `split_target`:

  ```python
  from chatgate.urlcodec import url_decode, url_encode, split_target

  url_encode("a b&c")                 # 'a+b%26c'
  url_decode("a+b%26c")               # 'a b&c'
  split_target("/get_test?x=1&y=2")   # ('/get_test', {'x': '1', 'y': '2'})
  ```

  `url_decode` raises `ValueError` on a malformed `%` escape.
- `chatgate.config`: `load_config`, `ConfigMgr` and `SectionInfo`.
- `chatgate.pool.ConnectionPool`: a blocking, closable first-in first-out
  pool.
  - `get` waits for a free item and raises `PoolClosedError` once the pool is
    closed.
  - `with pool.connection() as conn:` borrows an item and gives it back when
    the block ends.
- `chatgate.redis_store`:
  - `create_redis_store(host, port, password, pool_size)` opens pooled,
    authenticated Redis clients.
  - `RedisStore` offers `get`, `set`, `auth`, `lpush`, `rpush`, `lpop`,
    `rpop`, `hset`, `hget`, `delete`, `exists` and `close`. It reports
    failures through its return values and does not raise.
- `chatgate.rpc_clients`:
  - `VerifyClient` and `StatusClient` call pooled stubs.
  - Any failure comes back as a reply whose error is `RPC_FAILED`.
- `chatgate.status_service`:
  - `StatusService` chooses chat servers and issues tokens
    (`get_chat_server`) and answers token checks (`login`).
  - `parse_chat_servers(config)` reads the server list.
- `chatgate.logic.LogicSystem`:
  - routes paths to handlers. Register more with `reg_get` and `reg_post`;
    the first registration for a path wins.
  - `handle_get` and `handle_post` return a `Response`, or `None` for an
    unknown path.
- `chatgate.http_server`:
  - `handle_request(logic, method, target, body)` builds the reply for one
    request without any socket.
  - `GateServer(logic, host, port)` serves it over HTTP with `serve_forever`
    and `shutdown`. It can also be used as a context manager.

## What it does not do

- **No account database.** The `chatgate` command keeps registered users in
  process memory, so they are lost when it stops. To keep them, pass
  `LogicSystem` an object with `reg_user`, `check_email`, `update_pwd` and
  `check_pwd`.
- **No verification e-mails.** The command has no transport to a verification
  service: the call made for `/get_verifycode` always fails, and that failure
  is logged. The reply still reports success. The codes themselves must be
  placed in Redis by something else.
- **No separate status server.** The command runs `StatusService` in the same
  process and does not expose it over the network.
- **Redis must be reachable.** A Redis client that cannot connect or
  authenticate at start-up is left out of the pool. If none connect, Redis
  lookups wait indefinitely.