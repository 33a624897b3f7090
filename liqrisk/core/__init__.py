"""
Core margin-risk algorithms
"""
