"""Project scaffolding for `concorde new`."""

from __future__ import annotations

from pathlib import Path

from concorde.config import CONFIG_NAME

_CONFIG_TEMPLATE = """\
[parser]
max_depth = 32

[format]
indent = 2
"""

_MAIN_TEMPLATE = """\
# Hello from Concorde!
class Greeter(name = "world")
  def greet() = "Hello, " + name
end

greeter = Greeter()
print(greeter.greet())
"""

_GITIGNORE = """\
__pycache__/
.concorde/
"""

_README_TEMPLATE = """\
# {name}

A Concorde project.

## Check

```bash
concorde check
```

## Format

```bash
concorde format
```
"""


def scaffold(name: str, parent: Path | None = None) -> Path:
    """Create a new Concorde project directory. Returns the project path."""
    base = parent or Path.cwd()
    project_dir = base / name

    if project_dir.exists():
        raise FileExistsError(f"Directory '{name}' already exists")

    src_dir = project_dir / "src"
    src_dir.mkdir(parents=True)

    (project_dir / CONFIG_NAME).write_text(_CONFIG_TEMPLATE)
    (src_dir / "main.cdr").write_text(_MAIN_TEMPLATE)
    (project_dir / ".gitignore").write_text(_GITIGNORE)
    (project_dir / "README.md").write_text(_README_TEMPLATE.format(name=name))

    return project_dir
