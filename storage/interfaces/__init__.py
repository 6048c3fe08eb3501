"""
Storage Interfaces Package
"""
