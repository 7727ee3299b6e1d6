"""Bent's Woodworking assistant: retrieval-augmented chat backend."""

__version__ = "0.3.0"
