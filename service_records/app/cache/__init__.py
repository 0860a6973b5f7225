"""
Cache package for the Records Service.

Currently provides a Redis-backed cache holding one entry per document field
and per nested field, with no expiry.
"""
