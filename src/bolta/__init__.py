"""bolta: accelerometer step tracking with daily rewards."""

__version__ = "0.1.0"
