"""HTTP surface — FastAPI app, routers, middleware."""
