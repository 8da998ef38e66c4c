"""Route groups mounted under /api."""
