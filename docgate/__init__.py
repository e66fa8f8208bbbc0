"""docgate - HTTP gateway for a document database with live reconfiguration."""

__version__ = "0.1.0"
