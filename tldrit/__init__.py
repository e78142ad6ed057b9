"""TLDRit - news feed ingestion, summaries and audio for the TLDRit app."""

__version__ = "0.1.0"
