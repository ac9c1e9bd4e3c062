"""
Vizfolio - portfolio builder gateway, dashboard controllers and AI proxy
"""

__version__ = "1.0.0"
