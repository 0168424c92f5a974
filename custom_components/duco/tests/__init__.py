"""Tests for the Duco integration."""
