"""Job posting and resume ingestion: config-driven extraction, scoring, normalization."""
