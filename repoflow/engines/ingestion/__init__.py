"""Ingestion engine — locate, fetch and serialize a GitHub repository."""
