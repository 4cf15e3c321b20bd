"""Provisioner specifications: requirements, taints, constraints, validation and AWS provider settings."""

__version__ = "0.1.0"