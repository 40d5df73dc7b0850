"""Infrastructure layer: store access, external integrations, observability."""
