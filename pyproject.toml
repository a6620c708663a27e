[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fortiscrape"
version = "0.1.0"
description = "Collect FortiGate REST API statistics as Prometheus metrics"
requires-python = ">=3.10"
keywords = ["fortigate", "fortios", "prometheus", "metrics", "monitoring", "firewall", "bgp"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
]
dependencies = [
    "pyyaml",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["fortiscrape"]

[tool.hatch.build.targets.sdist]
include = ["fortiscrape", "tests"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
