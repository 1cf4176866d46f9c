[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "alpenglow"
version = "0.1.0"
description = "Block shredding, erasure coding and network interfaces for experimenting with the Alpenglow consensus protocol."
requires-python = ">=3.11"
keywords = [
    "alpenglow",
    "consensus",
    "erasure-coding",
    "reed-solomon",
    "merkle",
    "distributed-systems",
    "simulation",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Framework :: AsyncIO",
    "Topic :: System :: Distributed Computing",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[tool.hatch.build.targets.wheel]
packages = ["alpenglow"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"
