"""Transport resilience and deprecation helpers."""
