"""Internal building blocks of the streaming upload (not public API)."""
