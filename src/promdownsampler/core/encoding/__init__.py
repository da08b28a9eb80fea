"""Encoders for published output."""
