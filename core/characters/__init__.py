"""Static persona roster."""
