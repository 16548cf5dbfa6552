"""Feed ranking and discovery core for a community blogging backend."""

__version__ = "0.1.0"
