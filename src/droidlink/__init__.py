"""droidlink - connect to and manage debug-bridge devices from the desktop."""

__version__ = "0.1.0"
