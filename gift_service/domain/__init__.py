"""
Domain layer - entities and source contracts
"""
