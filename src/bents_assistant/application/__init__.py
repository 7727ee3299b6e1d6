"""Application layer: pipeline components and use cases."""
