"""
Marginalia: a local Markdown viewer with durable text highlights.
"""

__version__ = "0.1.0"
