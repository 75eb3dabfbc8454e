"""Flask API for the local-services marketplace."""
