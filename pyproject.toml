[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yrly"
version = "0.1.0"
description = "Relayer core for inter-blockchain communication: client, connection and channel handshakes and packet relaying between two chains"
requires-python = ">=3.10"
keywords = ["ibc", "relayer", "blockchain", "interchain", "light-client"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["yrly"]

[tool.pytest.ini_options]
addopts = "-ra"
