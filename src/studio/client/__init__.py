"""Client-side controller driving actions against the studio gateway."""
