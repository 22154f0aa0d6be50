"""HTTP layer: request dependencies and per-resource routers."""
