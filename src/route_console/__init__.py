"""Operator console backend for multi-vehicle bus route planning and fleet sizing."""
