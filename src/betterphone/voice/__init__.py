"""Voice recording upload, transcription and structured extraction."""
