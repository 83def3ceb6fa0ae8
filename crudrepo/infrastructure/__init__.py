"""Concrete remote endpoint and record store adapters.

Nothing is imported here so that reading settings (which the HTTP client
does at import time) only happens when the client is actually used.
"""
