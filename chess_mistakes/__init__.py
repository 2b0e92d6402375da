"""Player mistake reports from engine-annotated PGN collections."""
