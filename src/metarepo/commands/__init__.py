"""CLI commands for metarepo."""
