"""HTTP API for the site frontend."""
