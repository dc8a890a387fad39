"""Blueprint packages, one per entity family."""
