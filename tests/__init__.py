"""Tests for taskflow."""
