"""Wire schemas for rating payloads, results and channel messages."""
