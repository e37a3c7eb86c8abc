"""Cross-cutting primitives: exceptions, correlation, retry."""
