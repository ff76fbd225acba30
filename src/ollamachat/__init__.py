"""ollamachat — chat with a local Ollama server, with persistent sessions."""

__version__ = "0.1.0"
