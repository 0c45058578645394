"""Media rendition pipeline: derive, store and report image and video renditions."""

__version__ = "0.1.0"
