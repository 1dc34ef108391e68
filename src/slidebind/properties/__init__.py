"""Typed parsers for vendor-specific slide properties."""

from slidebind.properties.aperio import AperioProperties

__all__ = ["AperioProperties"]
