"""
Command-line interface for the dispatch core
"""
