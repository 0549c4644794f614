"""Generation services: dispatcher, strategies, backends, polling and storage."""
