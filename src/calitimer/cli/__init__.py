"""Command-line driver for the timer core."""
