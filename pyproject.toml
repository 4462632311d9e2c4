[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cwvalidator"
version = "0.1.0"
description = "Drive load generation and validate metrics, logs and performance results for a monitoring agent"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["validation", "metrics", "logs", "performance", "stress", "monitoring"]
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
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
cwvalidator = "cwvalidator.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["cwvalidator"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
