"""HTTP API: health endpoints and the versioned module routers."""
