"""Gateway services: retrieval, prompt assembly, forwarding and deferred memory work."""
