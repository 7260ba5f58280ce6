"""Core of the Koyeb Terraform provider: identifier mapping, status waiting, resources."""

__version__ = "0.1.0"
