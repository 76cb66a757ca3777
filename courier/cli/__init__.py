"""Command-line front-end for the Courier bot."""
