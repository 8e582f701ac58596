"""Environment-backed settings"""
