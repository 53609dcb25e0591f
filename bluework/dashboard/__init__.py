"""
Web dashboard package
"""
