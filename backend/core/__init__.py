"""
Core utilities: logging, time helpers, identifiers and the timer store
"""
