[build-system]
requires = ["setuptools>=64"]
build-backend = "setuptools.build_meta"

[project]
name = "cpusched"
version = "0.1.0"
description = "A multithreaded CPU scheduling simulator with FCFS, round-robin, priority-aging and SRTF schedulers"
requires-python = ">=3.10"
dependencies = []
keywords = ["scheduling", "simulation", "operating-systems", "cpu", "round-robin", "srtf", "gantt"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cpusched = "cpusched.cli:main"

[tool.setuptools.packages.find]
include = ["cpusched*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
