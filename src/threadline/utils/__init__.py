"""Utility helpers for Threadline."""
