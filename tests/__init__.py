"""Test suite for skin_season."""
