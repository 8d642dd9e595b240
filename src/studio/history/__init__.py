"""Generation history store keyed by user id."""
