"""Shared helpers: file locations and console output."""
