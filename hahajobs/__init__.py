"""Job board backend: accounts, sessions, summary responses and chat history over WSGI."""

__version__ = "0.1.0"