"""Tests for the lookup and memory-checking executable spec."""
