[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "ckgen"
version = "1.0.0"
description = "Bitcoind work generator and stratum message helpers with a wire-compatible JSON encoder"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "stratum",
    "mining",
    "bitcoin",
    "bitcoind",
    "json",
    "generator",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: Proxy Servers",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
ckgen-jsontree = "ckgen.jsontree:main"

[tool.hatch.build.targets.wheel]
packages = ["ckgen"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
