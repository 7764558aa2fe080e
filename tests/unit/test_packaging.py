"""
Tests for the project metadata in pyproject.toml.
"""

from pathlib import Path

PYPROJECT = Path(__file__).resolve().parents[2] / "pyproject.toml"


def project_table():
    """Lines of the [project] table."""
    lines = []
    in_project = False
    for line in PYPROJECT.read_text().splitlines():
        if line.startswith("["):
            in_project = line.strip() == "[project]"
            continue
        if in_project:
            lines.append(line.strip())
    return lines


class TestProjectMetadata:
    """Test the published package metadata."""

    def test_long_description_is_not_design_notes(self):
        readme = [line for line in project_table() if line.startswith("readme")]

        assert all("DESIGN.md" not in line for line in readme)

    def test_console_script(self):
        assert 'mintguard = "cli.main:main"' in PYPROJECT.read_text()
