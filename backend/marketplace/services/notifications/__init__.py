"""Order notifications."""
