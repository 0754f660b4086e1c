# /// script
# requires-python = ">=3.12"
# dependencies = ["pytest>=7.0"]
# ///
"""Every module carries a PEP 723 block that declares what it imports.

Validates:
  1. Each .py file begins with a ``# /// script`` metadata block
  2. The block declares requires-python
  3. Third-party imports (pydantic, flask, pytest) are listed as dependencies
"""

import re
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent

THIRD_PARTY = {"pydantic": "pydantic", "flask": "flask", "pytest": "pytest"}


def _all_py_files():
    files = []
    for f in sorted(PROJECT_ROOT.rglob("*.py")):
        rel = f.relative_to(PROJECT_ROOT)
        if any(part.startswith(".") or part == "__pycache__" or part == "build"
               for part in rel.parts):
            continue
        files.append(f)
    return files


def _metadata_block(text: str) -> str | None:
    m = re.search(r"^# /// script\s*\n((?:#[^\n]*\n)*?)# ///", text, re.MULTILINE)
    return m.group(1) if m else None


ALL_PY_FILES = _all_py_files()
ALL_PY_FILE_IDS = [str(f.relative_to(PROJECT_ROOT)) for f in ALL_PY_FILES]


@pytest.mark.parametrize("py_file", ALL_PY_FILES, ids=ALL_PY_FILE_IDS)
def test_starts_with_metadata_block(py_file):
    text = py_file.read_text()
    assert text.startswith("# /// script"), f"{py_file.name} lacks a PEP 723 block"
    block = _metadata_block(text)
    assert block is not None
    assert "requires-python" in block


@pytest.mark.parametrize("py_file", ALL_PY_FILES, ids=ALL_PY_FILE_IDS)
def test_third_party_imports_declared(py_file):
    text = py_file.read_text()
    block = _metadata_block(text) or ""
    for module, dist in THIRD_PARTY.items():
        if re.search(rf"^(?:from|import) {module}\b", text, re.MULTILINE):
            assert dist in block, f"{py_file.name} imports {module} without declaring it"
