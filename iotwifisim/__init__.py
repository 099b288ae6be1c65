"""Wi-Fi IoT sensor network simulator (sensors -> sink, UDP, per-flow metrics)."""

__version__ = "1.0.0"
