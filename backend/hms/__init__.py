"""
HMS - hotel reservation lifecycle and billing core
"""
__version__ = "1.0.0"
