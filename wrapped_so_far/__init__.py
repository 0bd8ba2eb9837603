"""
Wrapped-So-Far: a terminal year-in-review for your Spotify listening

The package talks to the Wrapped-So-Far API, which owns the Spotify OAuth
exchange and the listening analytics, and renders the result in the terminal.

Layout:
- config: settings, the persisted session and the browser login flow
- api: async HTTP client and wire models for the Wrapped-So-Far API
- dashboard: aggregation of one dashboard pass, insight derivation and the text report
- utils: logging and formatting helpers

Entry point: the `wrapped` console script (wrapped_so_far.main:cli).
"""

__version__ = "1.0.0"

__author__ = "Wrapped-So-Far Team"

__description__ = "Your Spotify year in review, so far, in the terminal"

__all__ = [
    "__version__",
    "__author__",
    "__description__",
]
