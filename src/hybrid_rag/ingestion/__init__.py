"""
Ingestion — document conversion, chunking, and per-chunk embedding /
knowledge extraction into the knowledge store.

This module is responsible for the ETL-like pipeline that converts raw
uploads (PDF, DOCX, XLSX, CSV, HTML, plain text) into embedded chunks
linked to a knowledge graph, reporting progress as it goes.
"""
