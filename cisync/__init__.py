"""cisync — keep configuration item scripts in step with git."""

__version__ = "0.1.0"
