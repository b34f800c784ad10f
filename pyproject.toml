[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "astria"
version = "0.1.0"
description = "Sequencer client, signed transaction types and block executor for a shared sequencer network"
requires-python = ">=3.10"
dependencies = [
    "httpx",
    "pynacl",
]
keywords = [
    "sequencer",
    "rollup",
    "tendermint",
    "cometbft",
    "ed25519",
    "protobuf",
    "json-rpc",
]
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
    "Topic :: System :: Distributed Computing",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["astria"]

[tool.hatch.build.targets.sdist]
include = [
    "astria",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"
