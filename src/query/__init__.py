"""Record query translation and dispatch."""
