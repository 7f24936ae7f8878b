"""Shared helpers: seeded random generators, logging setup, image loading."""
