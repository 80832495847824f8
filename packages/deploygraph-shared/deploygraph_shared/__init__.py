"""Shared infrastructure for deploygraph: logging, errors, configuration."""
