"""Framework-independent core: auth, data store access and observability."""
