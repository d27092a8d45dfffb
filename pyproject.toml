[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "boardview"
version = "0.1.0"
description = "Readers for printed circuit board boardview file formats"
requires-python = ">=3.10"
keywords = ["pcb", "boardview", "brd", "bvr", "altium", "fz", "eda"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Electronic Design Automation (EDA)",
]
dependencies = []

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["boardview"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
