"""
Content platform: annotation pipeline and tracking for training and
phishing-simulation content.
"""

__version__ = "1.0.0"
