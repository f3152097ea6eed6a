"""Attribute pipeline execution-graph nodes to the worker and stage that ran them."""

__all__ = []
