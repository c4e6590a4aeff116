[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mallcore"
version = "0.1.0"
description = "Core business logic for an online mall: payment request validation, OAuth sign-in helpers and a closure-table product category tree."
requires-python = ">=3.10"
keywords = ["e-commerce", "categories", "closure-table", "validation", "oauth", "jwt"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Office/Business",
]
dependencies = [
    "cryptography",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["mallcore"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
