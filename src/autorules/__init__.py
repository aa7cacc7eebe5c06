"""AI-assisted rule checks for project files."""

__version__ = "0.3.0"
