"""cooplock: cooperative lease-based locking over an object store."""

__version__ = "0.1.0"
