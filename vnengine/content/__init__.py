"""Content-pack types, the process-wide pack registry, and the bundled demo pack."""
