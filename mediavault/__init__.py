"""MediaVault - media ingestion, HLS transcoding and TMDB cataloging"""

__version__ = "1.0.0"
