"""Service packages of the LMS backend."""

__all__ = ["assessment"]
