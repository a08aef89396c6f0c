"""Command-line interface for datatransform."""
