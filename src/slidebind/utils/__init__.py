"""Shared utilities for slidebind."""
