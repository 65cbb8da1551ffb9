"""
BillBook - utility bill tracker

Photograph or upload a bill, extract its fields with a vision model,
keep a history and report on spending per billing period.
"""

__version__ = "0.1.0"
