"""
jobsift: discover job postings, extract structured facts and score candidate fit.
"""

__version__ = "0.1.0"
