"""Open-banking linkage services."""
