"""Data models for citations handed over by the reference manager."""

from .citation import Author, CitationError, CitationRecord, parse_citation_payload
