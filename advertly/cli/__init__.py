"""
Command-line interface for Advertly.
"""
