"""Version information of the transport hub package."""

__version__ = "0.1.0"
