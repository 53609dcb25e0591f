"""
BlueWork.ID careers site
"""

__version__ = "1.0.0"
