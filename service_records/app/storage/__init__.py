"""
Storage package for the Records Service.

Provides an S3-backed store holding the whole service data document as one
pretty-printed JSON object.
"""
