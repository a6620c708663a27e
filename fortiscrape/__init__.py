"""FortiGate REST API client, probes and Prometheus text rendering."""

__version__ = "0.1.0"