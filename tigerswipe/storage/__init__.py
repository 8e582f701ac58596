"""In-memory caches"""
