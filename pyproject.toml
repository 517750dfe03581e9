[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "locationsvc"
version = "0.1.0"
description = "Location service core: request bookkeeping, provider selection, fix filtering, background proxying and an in-process message-parcel model for GNSS, network and passive location providers."
requires-python = ">=3.10"
dependencies = []
keywords = ["location", "gnss", "geolocation", "geofence", "ipc", "locator"]
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
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["locationsvc"]

[tool.hatch.build.targets.sdist]
include = ["locationsvc", "tests", "README.md"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
