"""
Storage Utils Package
"""
