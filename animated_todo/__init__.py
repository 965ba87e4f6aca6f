"""Animated To-Do task backend."""
