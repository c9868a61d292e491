[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ssrcore"
version = "0.1.0"
description = "Stream ciphers, checksums, a bounded cache and authenticating protocol framing for ShadowsocksR-style proxies"
requires-python = ">=3.10"
dependencies = [
    "cryptography",
    "pycryptodome",
]
keywords = ["proxy", "shadowsocks", "ssr", "cipher", "checksum", "protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Security :: Cryptography",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["ssrcore"]

[tool.pytest.ini_options]
addopts = "-ra"
