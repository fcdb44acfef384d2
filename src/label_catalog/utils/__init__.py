"""Utility modules for the label catalog."""
