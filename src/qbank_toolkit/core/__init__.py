"""
Core Package

Models, errors, clock and serialization shared by all engines.
"""
