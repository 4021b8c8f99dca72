"""Main entry point when executing intraclient as a package.

This allows running the package using python -m intraclient.
"""

from intraclient.main import cli_entry_point

if __name__ == "__main__":
    cli_entry_point()
