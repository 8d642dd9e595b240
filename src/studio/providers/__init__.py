"""Provider gateway: endpoint table, payload shaping and response normalisation."""
