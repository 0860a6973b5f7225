"""
Records Service: a single JSON document persisted in S3 and served through Redis.
"""
