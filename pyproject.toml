[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "photonmgmt"
version = "0.1.0"
description = "Linux host management library: sysctl, groups, nftables, INI-style config files, background jobs and a JSON request router"
requires-python = ">=3.11"
dependencies = [
    "pyjwt",
]
keywords = [
    "systems-administration",
    "sysctl",
    "nftables",
    "firewall",
    "groups",
    "ini",
    "json-api",
    "jwt",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["photonmgmt"]

[tool.hatch.build.targets.sdist]
include = [
    "photonmgmt",
    "tests",
]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
