"""HTTP API: health endpoints and versioned module routers."""
