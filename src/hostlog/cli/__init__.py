"""
Operator command line for hostlog.
"""
