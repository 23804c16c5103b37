"""
ShareSmallBiz engagement and social-graph service
"""

__version__ = "1.0.0"
