"""Command line interface for tidalcord."""
