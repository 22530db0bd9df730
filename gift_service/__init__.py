"""
Farcaster Storage Gift Service
"""
