"""
Static, file-based NuGet feed generator.
"""

__version__ = "0.1.0"
