"""
Record handling for the Records Service.

Pure helpers (``keys``, ``paths``) are kept apart from the orchestration in
``service`` so they can be tested without any backing store.
"""
