"""
Storage Implementations Package
"""
