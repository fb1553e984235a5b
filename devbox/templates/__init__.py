"""Text templates rendered into the user's home directory."""
