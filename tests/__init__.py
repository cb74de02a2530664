"""Test suite for the station hub."""
