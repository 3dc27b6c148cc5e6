"""Relayer core: handshakes, packets and acknowledgements between two chains."""

__version__ = "0.1.0"