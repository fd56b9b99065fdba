[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "opct"
version = "0.5.1"
description = "Provider validation workflow for OpenShift clusters: preflight checks, environment setup, status tracking, result retrieval and cleanup."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "openshift",
    "kubernetes",
    "conformance",
    "sonobuoy",
    "validation",
    "testing",
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
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Clustering",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
opct = "opct.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["opct"]

[tool.hatch.build.targets.sdist]
include = ["opct", "tests", "README.md", "pyproject.toml"]

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
