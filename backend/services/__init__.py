"""
Graph backends and ingest parsing
"""
