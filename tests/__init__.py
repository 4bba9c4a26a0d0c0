"""Tests for Cascader."""
