"""Dyson Link - a client for Dyson Link (MQTT) fans, purifiers and heaters."""

__version__ = "0.3.1"
VERSION = __version__
