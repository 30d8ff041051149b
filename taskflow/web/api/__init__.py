"""taskflow API package."""
