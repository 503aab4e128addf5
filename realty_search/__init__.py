"""
Realty Search
Listing search, personalization and incremental index sync.
"""

__version__ = "0.1.0"
