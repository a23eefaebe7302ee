"""Tests for ralph package structure.

These tests verify the basic package setup and entry point functionality.
"""

import subprocess
import sys
from pathlib import Path


class TestPackageImportable:
    """Test that the ralph package is properly importable."""

    def test_import_ralph_package(self):
        """Ralph package should be importable."""
        import ralph

        assert ralph is not None

    def test_package_has_version(self):
        """Package should expose a __version__ attribute."""
        import ralph

        assert isinstance(ralph.__version__, str)
        assert len(ralph.__version__) > 0


class TestCLIEntryPoint:
    """Test that the CLI entry point works correctly."""

    def test_cli_help_works(self):
        """Running 'python -m ralph --help' should succeed and show help text."""
        result = subprocess.run(
            [sys.executable, "-m", "ralph", "--help"],
            capture_output=True,
            text=True,
            timeout=30,
        )
        assert result.returncode == 0
        assert "usage" in result.stdout.lower()
        assert "--max-iterations" in result.stdout


class TestTypeHints:
    """Test that type hints are enabled via py.typed marker."""

    def test_py_typed_marker_exists(self):
        """Package should include py.typed marker for PEP 561."""
        import ralph

        package_dir = Path(ralph.__file__).parent
        assert (package_dir / "py.typed").exists()
