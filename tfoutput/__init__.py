"""Terraform output to env-file plugin."""

__version__ = "0.1.0"
