[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "chatgate"
version = "0.1.0"
description = "HTTP gate server for a chat service: verification codes, registration, password reset, login and chat-server assignment"
requires-python = ">=3.10"
dependencies = [
    "redis",
]
keywords = ["chat", "gateway", "http", "login", "redis", "registration"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Communications :: Chat",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
chatgate = "chatgate.http_server:main"

[tool.hatch.build.targets.wheel]
packages = ["chatgate"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
