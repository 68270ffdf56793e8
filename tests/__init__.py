"""Tests for habitchain."""
