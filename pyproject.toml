[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "xvkit"
version = "0.1.0"
description = "Pieces of a small teaching operating system in Python: user library, Sv39 page tables, file-system image builder, shell parser and core file commands."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "operating-system",
    "teaching",
    "page-table",
    "sv39",
    "mkfs",
    "shell",
    "virtio",
    "grep",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Operating System",
    "Topic :: Education",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
xv-mkfs = "xvkit.mkfs:main"
xv-grep = "xvkit.grep:main"
xv-cat = "xvkit.commands:cat_main"
xv-echo = "xvkit.commands:echo_main"
xv-wc = "xvkit.commands:wc_main"
xv-ls = "xvkit.commands:ls_main"
xv-ln = "xvkit.commands:ln_main"
xv-mkdir = "xvkit.commands:mkdir_main"
xv-rm = "xvkit.commands:rm_main"
xv-kill = "xvkit.commands:kill_main"

[tool.hatch.build.targets.wheel]
packages = ["xvkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
