[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "botagent"
version = "0.1.0"
description = "Building blocks for trading bots: signals, Kelly sizing, risk controls, trade recording and Polymarket access."
requires-python = ">=3.10"
keywords = [
    "trading",
    "prediction-markets",
    "polymarket",
    "kelly-criterion",
    "risk-management",
    "eip-712",
    "websocket",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Financial and Insurance Industry",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business :: Financial :: Investment",
    "Typing :: Typed",
]
dependencies = [
    "requests>=2.28",
    "websocket-client>=1.6",
    "pycryptodome>=3.18",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["botagent"]

[tool.hatch.build.targets.sdist]
include = ["botagent", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
