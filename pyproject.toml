[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "pagedmem"
version = "0.1.0"
description = "Paged main-memory server for a teaching operating-system simulator"
requires-python = ">=3.10"
dependencies = []
keywords = ["paging", "memory", "operating-system", "simulator", "emulator", "sockets"]
classifiers = [
    "Development Status :: 3 - Alpha",
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
pagedmem = "pagedmem.app:main"

[tool.setuptools.packages.find]
include = ["pagedmem*"]

[tool.pytest.ini_options]
addopts = "-ra"
