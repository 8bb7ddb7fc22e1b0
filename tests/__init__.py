"""
Test suite for posinglib application.
"""
