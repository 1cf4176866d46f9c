"""Shredding, erasure coding, network interfaces and datasets for Alpenglow consensus."""

__version__ = "0.1.0"