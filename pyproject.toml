[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "demux"
version = "0.1.0"
description = "Library for tmux session monitoring: alert storage, configuration, output formatting, git and process inspection"
requires-python = ">=3.11"
dependencies = [
    "psutil",
]
keywords = ["tmux", "sessions", "alerts", "processes", "terminal", "git"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Operating System :: MacOS",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals",
    "Topic :: Utilities",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["demux"]

[tool.pytest.ini_options]
addopts = "-ra"
