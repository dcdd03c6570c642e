"""Core simulation rules: grid, pieces, territory and the phase systems."""
