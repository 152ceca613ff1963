"""Services layer - enrichment, storage and external integrations."""
