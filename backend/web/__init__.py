"""FreightWise web layer: FastAPI app, middleware, routes and SSR components."""
