"""Shared primitives used across the bbimport packages."""
