[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "baanetkit"
version = "0.1.0"
description = "A desktop network assistant for TCP server, TCP client and UDP testing"
requires-python = ">=3.10"
dependencies = []
keywords = ["tcp", "udp", "socket", "network", "debugging", "assistant", "tkinter"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: X11 Applications",
    "Environment :: Win32 (MS Windows)",
    "Environment :: MacOS X",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
baanetkit = "baanetkit.app:main"

[tool.hatch.build.targets.wheel]
packages = ["baanetkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
