"""Clients for the metrics backend: query, ingest and polling streams."""
