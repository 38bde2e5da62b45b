"""Build OTP upgrade packages from two release trees."""

__version__ = "0.3.0"
