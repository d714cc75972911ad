"""Minimal instrumented e-commerce demo."""
