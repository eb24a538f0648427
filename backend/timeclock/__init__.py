"""Time-clock kiosk: store code, PIN punch flow and pay-period hours."""

__version__ = "1.0.0"
