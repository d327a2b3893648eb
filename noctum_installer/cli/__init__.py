"""CLI module for noctum-installer."""
