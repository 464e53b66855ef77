"""
API routes for castcompat
"""
