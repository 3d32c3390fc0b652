"""Ivy interaction nets: syntax trees, type inference, type checking, flow analysis,
optimization, external values, a wire heap and string interning."""

__version__ = "0.1.0"