"""Configuration, errors, logging and storage primitives."""
