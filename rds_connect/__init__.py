"""Locate an RDS instance or Aurora cluster by tag and connect to it with a containerized client."""

__version__ = "1.0.0"
