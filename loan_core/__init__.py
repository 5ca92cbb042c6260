"""Payment allocation and portfolio exposure engine for Saudi credit facilities."""

__version__ = "0.1.0"
