[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "kripkesn"
version = "0.1.0"
description = "Discrete-ordinates (Sn) particle transport kernels and subdomain sweep scheduling"
requires-python = ">=3.10"
keywords = ["transport", "discrete-ordinates", "sweep", "diamond-difference", "physics"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Physics",
]
dependencies = ["numpy"]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["kripkesn"]

[tool.pytest.ini_options]
addopts = "-ra"
