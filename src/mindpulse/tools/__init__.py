"""Developer tooling (opt-in instrumentation)."""
