"""
Storage Models Package
"""
