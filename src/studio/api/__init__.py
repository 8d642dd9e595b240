"""HTTP surface of the studio gateway."""
