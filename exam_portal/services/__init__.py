"""
Test assembly engine and service layer
"""
