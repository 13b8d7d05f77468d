"""
Utilities package for Deadlock Detective.
Contains JSON state import/export, built-in samples and logging.
"""
