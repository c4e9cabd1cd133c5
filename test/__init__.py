"""
Unit tests for asql
"""
