"""Slammer: replay SQL statements against a database with a pool of workers."""

__version__ = "0.1.0"
