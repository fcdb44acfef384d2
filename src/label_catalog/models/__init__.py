"""Data models for the label catalog."""

from .config import Config

__all__ = ["Config"]
