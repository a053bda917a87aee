"""Core data types and scalar parsing shared by every pipeline stage."""
