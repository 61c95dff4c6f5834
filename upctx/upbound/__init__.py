"""Upbound profiles and API access."""
