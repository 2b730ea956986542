[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "loadrunner"
version = "0.1.0"
description = "Run batches of load tests in concurrent queues and report the results as xUnit XML"
requires-python = ">=3.10"
dependencies = [
    "pyyaml",
]
keywords = ["load testing", "benchmark", "xunit", "junit", "test runner", "container images"]
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
    "Topic :: Software Development :: Testing",
    "Topic :: System :: Benchmark",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
prepare-prebuilt-workers = "loadrunner.prepare_workers:main"
delete-prebuilt-workers = "loadrunner.delete_workers:main"

[tool.hatch.build.targets.wheel]
packages = ["loadrunner"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
