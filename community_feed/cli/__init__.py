"""Command-line interface for the community feed."""
