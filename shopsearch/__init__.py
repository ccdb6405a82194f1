"""
Shopsearch - storefront product search and relevance ranking service
"""

__version__ = "1.0.0"
