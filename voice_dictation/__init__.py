"""Voice dictation: record, upload for transcription, insert the text."""
