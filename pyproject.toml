[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "socialhub"
version = "0.1.0"
description = "Social service core for a game backend: club and union configuration, friends, remarks, chat bans and user lookups"
requires-python = ">=3.10"
dependencies = []
keywords = ["game", "social", "club", "friends", "remarks", "configuration", "backend"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Games/Entertainment",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["socialhub"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
