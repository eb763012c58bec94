"""Game ingestion, catalog and playback services."""
