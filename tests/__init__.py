"""Test suite for querypage."""
