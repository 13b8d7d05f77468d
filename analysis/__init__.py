"""
Analysis package for Deadlock Detective.
Contains trace events and the detect-then-recover pipeline.
"""
