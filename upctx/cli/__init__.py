"""
CLI module for upctx.
"""

from upctx.cli.main import app

def cli():
    """Entry point for the CLI."""
    app()
