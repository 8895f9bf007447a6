"""User directory."""
