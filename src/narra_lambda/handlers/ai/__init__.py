"""OpenAI proxies: chat completions, audio transcription and realtime transcription sessions."""
