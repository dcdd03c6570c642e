"""Rampart territorial-defense simulation core."""
