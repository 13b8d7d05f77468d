"""
Algorithms package for Deadlock Detective.
Contains wait-for graph and matrix deadlock detection, and recovery suggestions.
"""
