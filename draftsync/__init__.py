"""draftsync: Gmail synchronization and thread consistency for AI-drafted replies."""

__version__ = "0.1.0"
