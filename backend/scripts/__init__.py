"""Operator scripts for the open-banking backend."""
