[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rustlings"
version = "5.5.1"
description = "Runner for small Rust exercises: compiles, runs and tests them, and tracks your progress"
requires-python = ">=3.11"
keywords = ["rust", "exercises", "learning", "education", "rustc", "clippy"]
classifiers = [
    "Development Status :: 5 - Production/Stable",
    "Environment :: Console",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education :: Computer Aided Instruction (CAI)",
]
dependencies = [
    "watchdog",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
rustlings = "rustlings.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["rustlings"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
