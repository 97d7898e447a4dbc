"""Command line tools of the CoW benchmark."""
