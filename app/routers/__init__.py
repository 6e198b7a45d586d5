"""HTTP routers: storage and health."""
