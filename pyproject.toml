[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zinxutil"
version = "0.1.0"
description = "Concurrency utilities: sharded locked map, snowflake IDs, rotating log writer and hierarchical timing wheels"
requires-python = ">=3.10"
dependencies = []
keywords = ["timing wheel", "timer", "scheduler", "snowflake", "sharded map", "log rotation", "fnv"]
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
    "Topic :: Software Development :: Libraries",
    "Topic :: System :: Logging",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zinxutil"]

[tool.hatch.build.targets.sdist]
include = ["zinxutil", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
