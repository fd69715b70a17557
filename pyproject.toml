[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "sipmctl"
version = "0.1.0"
description = "Set bias voltages and read monitor values on a SiPM power supply over a LinkUSB 1-wire adapter"
requires-python = ">=3.10"
dependencies = [
    "pyserial",
]
keywords = ["sipm", "linkusb", "1-wire", "ds2413", "i2c", "ltc2615", "ltc2451", "pca9536", "power supply"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Instrument Drivers",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
sipmctl = "sipmctl.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sipmctl"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"
