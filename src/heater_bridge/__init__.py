"""Diesel heater RF <-> MQTT bridge."""

__version__ = "0.1.0"
