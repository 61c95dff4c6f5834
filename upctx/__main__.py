"""
Main entry point for the upctx CLI.
"""

from upctx.cli import cli


def main() -> None:
    """Main function for the upctx CLI."""
    cli()


if __name__ == "__main__":
    main()
