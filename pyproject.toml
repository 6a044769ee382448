[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "vaultcrd"
version = "0.1.0"
description = "Data model and helpers for the spec of a Vault cluster custom resource"
requires-python = ">=3.10"
dependencies = []
keywords = ["vault", "kubernetes", "operator", "crd", "unseal"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["vaultcrd"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
