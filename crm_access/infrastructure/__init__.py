"""Infrastructure: store backends, security primitives and cache."""
