"""Infrastructure layer for external integrations."""
