"""Threadline: threaded social feed core and API."""
