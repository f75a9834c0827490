"""API routers for the Prompt Builder backend."""
