"""HTTP facade: config, logging, FastAPI app."""
