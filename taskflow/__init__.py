"""taskflow package."""
