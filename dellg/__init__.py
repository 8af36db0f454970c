"""Dell G-series control panel: RGB keyboard lighting, power modes and fans."""

__version__ = "0.3.0"
