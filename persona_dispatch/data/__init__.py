"""
Data layer: persona models and the definition store
"""
