"""
Example modules demonstrating chowchow usage.
"""

from .greet_module import GreeterModule

__all__ = [
    "GreeterModule",
]
