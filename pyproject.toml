[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "powervs-csi"
version = "0.1.0"
description = "Helpers for a PowerVS block storage driver: provider-ID metadata, storage pool affinity reconciliation, multipath device discovery and driver options."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "powervs",
    "csi",
    "block-storage",
    "multipath",
    "kubernetes",
    "device-mapper",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Filesystems",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["powervs_csi"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
