"""AI adapters: RFQ confirmation text generation (stub and local Ollama)."""
