"""devbox — idempotent workstation provisioning for WSL."""

__version__ = "0.1.0"
