[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "naza"
version = "0.1.0"
description = "Small building blocks: streaming byte buffer, levelled logger, rate limiters, byte buffer pool, HTTP and UDP helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "buffer",
    "logging",
    "rate-limit",
    "token-bucket",
    "leaky-bucket",
    "buffer-pool",
    "udp",
    "http",
    "rtsp",
    "json",
]
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
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["naza"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
