"""Serverless ingestion pipeline for rider verification photos."""

__version__ = "0.1.0"
