"""HTTP-level protections: CORS, rate limiting and request logging."""
