"""Update ingestion: long-polling and webhook sources."""
