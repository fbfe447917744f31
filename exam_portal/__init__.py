"""
Exam Portal
Question pools, test assembly and scoring service
"""
__version__ = "1.0.0"
