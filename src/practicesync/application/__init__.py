"""Application layer: state slices and services."""
