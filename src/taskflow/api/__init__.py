"""Task backends: the HTTP API client and the offline in-memory stand-in."""
