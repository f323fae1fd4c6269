"""Hotel booking service: room availability, reservations and payments."""

__version__ = "0.1.0"
