"""
Storage Controllers Package
"""
