"""Core functionality for tm2bd."""
