"""Operation tracking and recovery core for the Google Ads campaign dashboard."""

__version__ = "0.1.0"
