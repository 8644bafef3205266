"""
Event Feed Aggregator

This package provides:
- Reconciling a primary and a secondary feed for the same venue
- Stable, keyset-paginated, filtered pages over the canonical store
- Facet metadata (tags, cities, zip codes) for filter UIs

Target: Asheville, NC area
"""

__version__ = "3.0.0"
