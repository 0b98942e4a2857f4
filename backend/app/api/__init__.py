"""HTTP routers of the chat API."""
