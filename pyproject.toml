[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "meetrecorder"
version = "0.1.0"
description = "Meeting transcript logging, speaker attribution and topic segmentation for recorded conversations"
requires-python = ">=3.11"
dependencies = []
keywords = [
    "transcript",
    "meeting",
    "speech",
    "segmentation",
    "summarization",
    "speaker-detection",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: End Users/Desktop",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Speech",
    "Topic :: Office/Business :: News/Diary",
    "Topic :: Text Processing :: General",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
meetrecorder = "meetrecorder.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["meetrecorder"]

[tool.hatch.build.targets.sdist]
include = ["meetrecorder", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP", "SIM"]

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
warn_redundant_casts = true
