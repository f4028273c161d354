"""Services — stand-in collaborators consulted by middlewares (no core logic)."""
