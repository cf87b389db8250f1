"""TEA education platform API."""
