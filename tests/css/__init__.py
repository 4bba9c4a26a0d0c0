"""Tests for CSS parsing and selectors."""
