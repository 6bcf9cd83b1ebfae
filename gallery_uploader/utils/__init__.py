"""Small helpers shared across the uploader."""
