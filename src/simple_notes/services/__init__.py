"""Services coordinating the note store, disk mirror and interchange."""
