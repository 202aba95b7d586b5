"""Meeting transcript logging, speaker attribution and topic segmentation."""

__version__ = "0.1.0"