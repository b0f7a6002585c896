"""Infrastructure layer: persistence, auth and the HTTP API."""
