"""lung-capsnet: capsule-network classification of lung nodules from CT scans."""

__version__ = "0.1.0"
