"""Adapters for metadata providers and the remote catalog store."""
