"""HTTP surface of docgate."""
