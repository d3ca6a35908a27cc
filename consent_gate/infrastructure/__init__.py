"""Infrastructure layer: adapters, stubs, diagnostics, logging and metrics."""
