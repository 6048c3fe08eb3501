"""
Storage Managers Package
"""
