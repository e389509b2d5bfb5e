[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imgpack"
version = "0.1.0"
description = "Skyline rectangle packing, pure-Python image writers, CRC-32C checksums and zstd helpers"
requires-python = ">=3.10"
keywords = [
    "rectangle packing",
    "skyline",
    "texture atlas",
    "png",
    "bmp",
    "tga",
    "hdr",
    "jpeg",
    "deflate",
    "zstd",
    "crc32c",
]
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
    "Topic :: Multimedia :: Graphics",
    "Topic :: System :: Archiving :: Compression",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = [
    "zstandard>=0.21",
]

[project.optional-dependencies]
test = [
    "pytest>=7.4",
    "pillow>=10.0",
]

[tool.hatch.build.targets.wheel]
packages = ["imgpack"]

[tool.hatch.build.targets.sdist]
include = ["imgpack", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
check_untyped_defs = true
