"""
Shared utilities (logging).
"""
