"""crystaldb - typed document mapping for schema-defined units."""

__version__ = "0.1.0"
