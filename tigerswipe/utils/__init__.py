"""Text, link and redaction helpers"""
