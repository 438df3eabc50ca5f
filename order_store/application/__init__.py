"""Application layer - use cases over the order repository."""
