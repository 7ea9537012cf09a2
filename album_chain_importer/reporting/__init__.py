"""Import outcome reports."""
