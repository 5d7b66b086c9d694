"""Stores and dispatch for the wallet web service."""
