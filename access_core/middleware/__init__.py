"""Request guards applied ahead of route handlers."""
