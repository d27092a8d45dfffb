"""Readers that turn boardview files into a shared model of parts, pins, nails and outline."""

__version__ = "0.1.0"