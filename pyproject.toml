[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "adbench"
version = "0.1.0"
description = "Ad-redirect HTTP servers and a concurrent load-testing client for comparing server setups"
requires-python = ">=3.10"
keywords = ["benchmark", "load-testing", "http", "redirect", "aiohttp", "rps", "latency"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Framework :: aiohttp",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: System :: Benchmark",
    "Topic :: Software Development :: Testing :: Traffic Generation",
]
dependencies = [
    "aiohttp",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
adbench-server = "adbench.server_cli:main"
adbench-client = "adbench.client_cli:main"

[tool.hatch.build.targets.wheel]
packages = ["adbench"]

[tool.hatch.build.targets.sdist]
include = ["adbench", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
ignore_missing_imports = true
