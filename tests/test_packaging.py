"""
Unit tests for project metadata.
"""

import sys
from pathlib import Path

# Add parent directory to path before importing rpp_core
sys.path.insert(0, str(Path(__file__).parent.parent))

import unittest  # noqa: E402

import rpp_core  # noqa: E402

PYPROJECT = Path(__file__).parent.parent / "pyproject.toml"


class TestProjectMetadata(unittest.TestCase):
    """Test pyproject.toml against the package."""

    def setUp(self):
        self.lines = [line.strip() for line in PYPROJECT.read_text(encoding="utf-8").splitlines()]

    def test_version_matches_package(self):
        """Test the declared version is the package version."""
        self.assertIn(f'version = "{rpp_core.__version__}"', self.lines)

    def test_long_description_files_exist(self):
        """Test any readme the metadata names ships with the project."""
        for line in self.lines:
            if line.startswith("readme"):
                name = line.split("=", 1)[1].strip().strip('"')
                self.assertTrue((PYPROJECT.parent / name).exists())


if __name__ == "__main__":
    unittest.main()
