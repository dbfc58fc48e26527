[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "cpisync"
version = "0.1.0"
description = "Repository-side bookkeeping for syncing Cloud Integration packages with Git: artifact change detection, ignore rules, folder comparison, transport records and branch conventions."
requires-python = ">=3.10"
dependencies = []
keywords = ["git", "integration", "transport", "sync", "artifacts", "cpi"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Version Control :: Git",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
cpisync = "cpisync.help:main"

[tool.hatch.build.targets.wheel]
packages = ["cpisync"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
