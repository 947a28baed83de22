"""Top-level package for the question-bank exam toolkit.

Provides subpackages:
- qbank_toolkit.core – immutable models, errors, serialization
- qbank_toolkit.generation – constrained paper generation
- qbank_toolkit.session – timed exam session state machine
- qbank_toolkit.grading – auto-grading and manual amendments
- qbank_toolkit.access – access code resolution
- qbank_toolkit.storage – repository/store protocols and reference stores
"""

def _get_version() -> str:
    """Get version from pyproject.toml (dev) or importlib.metadata (installed)."""
    from pathlib import Path

    pyproject = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject.exists():
        try:
            content = pyproject.read_text()
            for line in content.splitlines():
                if line.strip().startswith("version"):
                    # Parse: version = "0.3.0"
                    return line.split("=")[1].strip().strip('"').strip("'")
        except OSError:
            pass

    from importlib.metadata import version as pkg_version, PackageNotFoundError

    try:
        return pkg_version("qbank-toolkit")
    except PackageNotFoundError:
        return "0.0.0"

__version__ = _get_version()
__all__: list[str] = ["__version__"]
