[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "dknet"
version = "0.1.0"
description = "Network configuration parsing, binary weight files, planar float images and pooling/normalization layers"
requires-python = ">=3.10"
dependencies = [
    "numpy",
    "pillow",
]
keywords = ["neural network", "cfg", "weights", "image", "maxpool", "quantization", "lrn"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Operating System :: OS Independent",
    "Topic :: Scientific/Engineering :: Artificial Intelligence",
    "Topic :: Scientific/Engineering :: Image Processing",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["dknet"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
