"""Text transformation adapters."""
