"""
Infrastructure layer - upstream API clients
"""
