"""Cross-cutting primitives: request context and the error taxonomy root."""
