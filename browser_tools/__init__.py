"""Browser automation over the Chrome DevTools protocol."""

__version__ = "0.1.0"
