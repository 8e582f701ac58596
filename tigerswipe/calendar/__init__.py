"""Calendar service client"""
