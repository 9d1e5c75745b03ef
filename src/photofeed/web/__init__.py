"""FastAPI web layer: JSON feed, HTML viewer, upload webhook."""
