"""Blueprint package exports."""
