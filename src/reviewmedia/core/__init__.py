"""Configuration, errors, logging and security primitives."""
