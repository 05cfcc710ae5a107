[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "oberonc"
version = "0.1.0"
description = "Operator codes, syntax tree nodes, constant folding and SPARC assembly generation for a teaching subset of Oberon"
requires-python = ">=3.10"
dependencies = []
keywords = ["oberon", "compiler", "constant folding", "sparc", "assembly", "code generation"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Compilers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["oberonc"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
