"""Image-to-prompt task service."""
