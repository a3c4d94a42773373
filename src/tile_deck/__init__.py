"""TileDeck - dashboard tiles that keep their last good data.

Each tile polls its own data source, caches the last result and degrades to
stale data when the source is unavailable.
"""

PROJECT_NAME = "TileDeck"
PACKAGE_NAME = "tile_deck"
__version__ = "1.0.0"

__all__ = ["PROJECT_NAME", "PACKAGE_NAME", "__version__"]
