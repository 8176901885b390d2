"""Domain models for the scheduling engine."""
