"""Chatbot runtime: tenant-scoped public chat over admin-managed knowledge."""
__version__ = "0.1.0"
