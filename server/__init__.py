"""Host-side adapters: storage backends and the HTTP API."""
