"""Location service core: requests, provider selection, fix reporting, background proxying and in-process IPC parcels."""

__version__ = "0.1.0"