[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sshcore"
version = "0.1.0"
description = "SSH transport building blocks: packet ciphers, authentication method sets and asyncio channel I/O"
requires-python = ">=3.10"
keywords = ["ssh", "cipher", "aes-ctr", "aes-gcm", "chacha20-poly1305", "channel", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: Security :: Cryptography",
    "Topic :: Internet",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["sshcore"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
