"""SIEVEDNS — bulk subdomain resolution with wildcard and spoof filtering."""

__version__ = "0.1.0"
