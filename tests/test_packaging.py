"""
Tests for the project metadata.
"""

import re
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent


class TestProjectMetadata:
    """Test suite for pyproject.toml"""

    def test_readme_is_project_readme(self):
        """Should publish README.md as the package description"""
        text = (ROOT / "pyproject.toml").read_text()
        match = re.search(r'^readme\s*=\s*"([^"]+)"', text, re.MULTILINE)
        assert match is not None
        assert match.group(1) == "README.md"
        assert (ROOT / match.group(1)).is_file()
