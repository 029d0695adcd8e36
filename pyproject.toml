[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "wfstore"
version = "0.1.0"
description = "SQL data store for a blogging platform: users, tokens, collection attributes, email subscribers, OAuth links and publish jobs"
requires-python = ">=3.10"
dependencies = []
keywords = ["database", "sqlite", "mysql", "blog", "datastore"]
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
    "Topic :: Database",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["wfstore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
