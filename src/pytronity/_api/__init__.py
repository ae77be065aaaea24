"""Internal endpoint modules. Not part of the public API."""
