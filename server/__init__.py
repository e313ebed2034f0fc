"""Workbench HTTP service."""
