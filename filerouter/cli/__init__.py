"""CLI module for filerouter."""
