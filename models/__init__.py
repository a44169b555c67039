"""Data models for the package switcher."""
