"""
Models package for Deadlock Detective.
Contains the snapshot data model and its structural validation.
"""
