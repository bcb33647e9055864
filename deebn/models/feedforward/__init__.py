"""Feed-forward models."""
