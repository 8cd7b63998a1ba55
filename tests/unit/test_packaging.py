"""Every third-party module the package imports is declared in pyproject.toml."""

import ast
import re
import sys
import tomllib
from pathlib import Path

import pytest

ROOT = Path(__file__).parent.parent.parent

# Import name -> distribution name, where they differ.
DISTRIBUTIONS = {
    "bs4": "beautifulsoup4",
    "yaml": "PyYAML",
    "docx": "python-docx",
    "google": "google-genai",
}


def _declared() -> set[str]:
    project = tomllib.loads((ROOT / "pyproject.toml").read_text())["project"]
    requirements = list(project["dependencies"])
    for extra in project["optional-dependencies"].values():
        requirements.extend(extra)
    return {re.split(r"[<>=!~\[; ]", req, maxsplit=1)[0].lower() for req in requirements}


def _imported_modules() -> set[str]:
    sources = [ROOT / "main.py", *sorted((ROOT / "jobingest").rglob("*.py"))]
    modules: set[str] = set()
    for path in sources:
        for node in ast.walk(ast.parse(path.read_text(), str(path))):
            if isinstance(node, ast.Import):
                modules.update(alias.name.split(".")[0] for alias in node.names)
            elif isinstance(node, ast.ImportFrom) and node.level == 0 and node.module:
                modules.add(node.module.split(".")[0])
    return {m for m in modules if m not in sys.stdlib_module_names and m not in {"jobingest", "main"}}


class TestDeclaredDependencies:
    def test_every_import_declared(self) -> None:
        declared = _declared()
        missing = sorted(
            m for m in _imported_modules() if DISTRIBUTIONS.get(m, m).lower() not in declared
        )
        assert missing == []

    @pytest.mark.parametrize("module", ["bs4", "soupsieve", "pydantic", "yaml", "patchright"])
    def test_core_imports_are_runtime_dependencies(self, module: str) -> None:
        project = tomllib.loads((ROOT / "pyproject.toml").read_text())["project"]
        runtime = {re.split(r"[<>=!~\[; ]", s, maxsplit=1)[0].lower() for s in project["dependencies"]}
        assert DISTRIBUTIONS.get(module, module).lower() in runtime
