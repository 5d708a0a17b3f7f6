[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "netsuite-mcp"
version = "1.0.0"
description = "A Model Context Protocol server exposing NetSuite record metadata and SuiteQL queries over stdio"
requires-python = ">=3.10"
keywords = ["netsuite", "mcp", "suiteql", "model-context-protocol", "json-schema"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Front-Ends",
]
dependencies = [
    "pyjwt>=2.4",
    "cryptography>=3.4",
    "requests>=2.28",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "responses>=0.23",
]

[project.scripts]
netsuite-mcp = "netsuite_mcp.server:main"

[tool.hatch.build.targets.wheel]
packages = ["netsuite_mcp"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
