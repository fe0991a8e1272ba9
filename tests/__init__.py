"""Tests for aito."""
