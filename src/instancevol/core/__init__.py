"""Core domain: errors, ids, models, interfaces."""
