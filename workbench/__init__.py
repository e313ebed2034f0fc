"""Workbench: an in-memory component workspace with a live HTML preview."""
