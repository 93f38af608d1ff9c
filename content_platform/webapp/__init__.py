"""
HTTP adapter: content submission, launch player and tracking endpoints.
"""
