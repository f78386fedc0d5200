"""Browser chat relay for a Claude agent backend."""

__version__ = "0.1.0"
