"""Service wiring helpers for the importer."""
